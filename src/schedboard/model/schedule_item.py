# SPDX-License-Identifier: MIT

from typing import NotRequired, Optional, TypedDict

import pendulum

from schedboard.model.entity_id import ClientId, ServerId


class ScheduleItem(TypedDict):
    client_id: ClientId
    server_id: Optional[ServerId]
    quiz_id: str
    quiz_root_id: Optional[str]
    quiz_version: Optional[int]
    start_date: pendulum.DateTime
    end_date: pendulum.DateTime
    attempts_allowed: Optional[int]
    show_answers_after_attempt: Optional[bool]
    contribution: Optional[float]
    # display metadata, read-only for the board
    quiz_name: Optional[str]
    subject: Optional[str]
    subject_color: Optional[str]


class SchedulePatch(TypedDict, total=False):
    start_date: pendulum.DateTime
    end_date: pendulum.DateTime
    attempts_allowed: int
    show_answers_after_attempt: bool
    contribution: float
    quiz_version: int


class QuizSummary(TypedDict):
    """A quiz as offered by the quiz bank, before it is placed on the board."""

    id: str
    title: Optional[str]
    subject: Optional[str]
    subject_color: Optional[str]
    root_id: NotRequired[Optional[str]]
    version: NotRequired[Optional[int]]
