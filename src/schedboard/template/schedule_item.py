# SPDX-License-Identifier: MIT

from schedboard.model.entity_id import generate_client_id
from schedboard.model.schedule_item import ScheduleItem
from schedboard.time import now_utc

DEFAULT_CONTRIBUTION = 100


def get_schedule_item_template() -> ScheduleItem:
    now = now_utc()
    return {
        "client_id": generate_client_id(),
        "server_id": None,
        "quiz_id": "",
        "quiz_root_id": None,
        "quiz_version": None,
        "start_date": now,
        "end_date": now,
        "attempts_allowed": None,
        "show_answers_after_attempt": None,
        "contribution": DEFAULT_CONTRIBUTION,
        "quiz_name": None,
        "subject": None,
        "subject_color": None,
    }
