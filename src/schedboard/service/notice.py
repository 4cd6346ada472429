# SPDX-License-Identifier: MIT

from typing import Any, Callable, Optional

from schedboard.model.notice import Notice, NoticeVariant

type Notify = Callable[[Notice], object]


def format_field_errors(field_errors: Optional[dict[str, Any]]) -> str:
    """
    Render validation errors as extra notice lines.

    Returns an empty string when there is nothing to show, otherwise one
    `field: message` line per field, preceded by a newline.
    """
    if not field_errors or not isinstance(field_errors, dict):
        return ""
    parts: list[str] = []
    for field, value in field_errors.items():
        if isinstance(value, (list, tuple)):
            parts.append(f"{field}: {', '.join(str(v) for v in value)}")
        elif value is not None:
            parts.append(f"{field}: {value}")
    if len(parts) == 0:
        return ""
    return "\n" + "\n".join(parts)


def make_notice(
    title: str, description: Optional[str], variant: NoticeVariant
) -> Notice:
    return {"title": title, "description": description, "variant": variant}
