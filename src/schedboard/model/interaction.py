# SPDX-License-Identifier: MIT

from enum import Enum
from typing import TypedDict

import pendulum

from schedboard.model.entity_id import ClientId


class InteractionKind(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"


class ResizeEdge(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class DatePreview(TypedDict):
    start_date: pendulum.DateTime
    end_date: pendulum.DateTime


class CommittedPatch(TypedDict):
    client_id: ClientId
    kind: InteractionKind
    start_date: pendulum.DateTime
    end_date: pendulum.DateTime
