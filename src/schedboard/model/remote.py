# SPDX-License-Identifier: MIT

from typing import Any, NotRequired, Optional, TypedDict


class RemoteResult(TypedDict):
    ok: bool
    data: NotRequired[Any]
    message: NotRequired[Optional[str]]
    status: NotRequired[Optional[int]]
    field_errors: NotRequired[Optional[dict[str, Any]]]
