# SPDX-License-Identifier: MIT

from typing import TypedDict

from schedboard.model.schedule_item import ScheduleItem


class LaneItem(ScheduleItem):
    """
    Per-render projection of a schedule item onto the track.

    Columns are 1-based and inclusive, relative to the first track day.
    Clipping flags compare the unclipped range with the visible window.
    """

    col_start: int
    col_end: int
    lane: int
    clipped_left: bool
    clipped_right: bool


class Layout(TypedDict):
    lanes: list[LaneItem]
    lane_count: int
    track_start: str
    track_end: str
    visible_start: str
    visible_end: str
    visible_start_col: int
    visible_end_col: int
