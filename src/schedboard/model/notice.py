# SPDX-License-Identifier: MIT

from typing import Literal, Optional, TypedDict

NoticeVariant = Literal["success", "error"]


class Notice(TypedDict):
    title: str
    description: Optional[str]
    variant: NoticeVariant
