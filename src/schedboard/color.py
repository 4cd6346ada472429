# SPDX-License-Identifier: MIT

import re
from typing import Optional

DEFAULT_PILL_COLOR = "bright_blue"
TODAY_COLOR = "bold black on bright_cyan"
PAST_DAY_COLOR = "bright_black"
CLIP_MARKER_COLOR = "bold white"

HEX_COLOR_PATTERN = re.compile(r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")


def normalize_hex_color(color: str) -> str:
    """Expand `#abc`/`abc` to `#aabbcc` so rich can parse it."""
    match = HEX_COLOR_PATTERN.match(color.strip())
    if match is None:
        raise ValueError(f"Invalid color: {color!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return f"#{digits.lower()}"


def pill_color(color: Optional[str]) -> str:
    if color is None:
        return DEFAULT_PILL_COLOR
    try:
        return normalize_hex_color(color)
    except ValueError:
        # Named rich colors pass through
        return color


def text_color_for(background: str) -> str:
    """Black or white, whichever reads better on a hex background."""
    if not background.startswith("#"):
        return "black"
    r, g, b = (int(background[i : i + 2], 16) for i in (1, 3, 5))
    luminance = 0.299 * r + 0.587 * g + 0.114 * b
    return "black" if luminance > 150 else "white"
