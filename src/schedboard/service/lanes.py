# SPDX-License-Identifier: MIT

from typing import Mapping, Optional, TypedDict, cast

from schedboard.model.entity_id import ClientId
from schedboard.model.interaction import DatePreview
from schedboard.model.lane_item import LaneItem
from schedboard.model.schedule_item import ScheduleItem
from schedboard.time import day_key, diff_days


class _Placed(TypedDict):
    item: ScheduleItem
    col_start: int
    col_end: int
    clipped_left: bool
    clipped_right: bool
    start_offset: int
    duration: int


def merge_previews(
    items: list[ScheduleItem], previews: Mapping[ClientId, DatePreview]
) -> list[ScheduleItem]:
    """Overlay live drag/resize date ranges onto the item list."""
    if not previews:
        return list(items)
    merged: list[ScheduleItem] = []
    for item in items:
        preview = previews.get(item["client_id"])
        if preview is None:
            merged.append(item)
        else:
            merged.append(cast(ScheduleItem, {**item, **preview}))
    return merged


def col_index_for_day_key(day: str, track_start: str, track_cols: int) -> int:
    """1-based grid column of a day, clamped to the track."""
    idx = diff_days(day, track_start)
    return min(track_cols - 1, max(0, idx)) + 1


def lanes_overlap(a: LaneItem, b: LaneItem) -> bool:
    return not (a["col_end"] < b["col_start"] or a["col_start"] > b["col_end"])


def _sort_key(placed: _Placed) -> tuple[int, int, int, str, str, str]:
    item = placed["item"]
    return (
        placed["col_start"],
        placed["start_offset"],
        -placed["duration"],
        item["quiz_name"] or "",
        str(item["quiz_id"]),
        str(item["client_id"]),
    )


def _place(
    items: list[ScheduleItem],
    track_start: str,
    track_end: str,
    visible_start: str,
    visible_end: str,
    tz: str,
) -> list[_Placed]:
    track_cols = diff_days(track_end, track_start) + 1
    placed: list[_Placed] = []
    for item in items:
        item_start = day_key(item["start_date"], tz)
        item_end = day_key(item["end_date"], tz)

        # Entirely outside the track
        if item_start > track_end or item_end < track_start:
            continue

        start = max(item_start, track_start)
        end = min(item_end, track_end)
        col_start = col_index_for_day_key(start, track_start, track_cols)
        col_end = col_index_for_day_key(end, track_start, track_cols)

        placed.append(
            {
                "item": item,
                "col_start": min(col_start, col_end),
                "col_end": max(col_start, col_end),
                "clipped_left": item_start < visible_start,
                "clipped_right": item_end > visible_end,
                "start_offset": diff_days(start, track_start),
                "duration": diff_days(end, start),
            }
        )
    return placed


def build_lanes(
    items: list[ScheduleItem],
    track_start: str,
    track_end: str,
    visible_start: str,
    visible_end: str,
    tz: str,
    lane_lock: Optional[Mapping[ClientId, int]] = None,
    sticky: Optional[Mapping[ClientId, int]] = None,
) -> list[LaneItem]:
    """
    Assign every item on the track a column span and a lane.

    Items are packed greedily left to right in a fixed total order, so the
    result only depends on the items and the two maps, never on input order.

    Args:
        items: Schedule items, already merged with any live previews
        track_start: First day key of the track
        track_end: Last day key of the track
        visible_start: First visible day key (drives clipping flags)
        visible_end: Last visible day key (drives clipping flags)
        tz: Timezone the day keys are expressed in
        lane_lock: At most one client id forced into a lane (active resize)
        sticky: Preferred lanes from before the current interaction began

    Returns:
        Lane items in packing order
    """
    placed = _place(items, track_start, track_end, visible_start, visible_end, tz)
    placed.sort(key=_sort_key)

    locked_id: Optional[ClientId] = None
    locked_lane: Optional[int] = None
    if lane_lock:
        locked_id, locked_lane = next(iter(lane_lock.items()))

    # Locked span only blocks its own lane; laneEnd is not pre-seeded so
    # earlier items keep their places.
    locked_span: Optional[tuple[int, int]] = None
    if locked_id is not None:
        for p in placed:
            if p["item"]["client_id"] == locked_id:
                locked_span = (p["col_start"], p["col_end"])
                break

    def conflicts_locked(lane: int, col_start: int, col_end: int) -> bool:
        if lane != locked_lane or locked_span is None:
            return False
        return not (col_end < locked_span[0] or col_start > locked_span[1])

    # Lanes other present items held before the interaction
    held: dict[ClientId, int] = {}
    if sticky:
        present = {p["item"]["client_id"] for p in placed}
        held = {cid: lane for cid, lane in sticky.items() if cid in present}

    lane_end: list[Optional[int]] = []  # highest occupied column per lane
    lanes: list[LaneItem] = []

    for p in placed:
        client_id = p["item"]["client_id"]
        col_start = p["col_start"]
        col_end = p["col_end"]

        if client_id == locked_id and locked_lane is not None:
            target = locked_lane
        else:
            target = -1
            for lane in _search_order(len(lane_end), held, client_id):
                end = lane_end[lane] if lane < len(lane_end) else None
                if conflicts_locked(lane, col_start, col_end):
                    continue
                if end is None or col_start > end:
                    target = lane
                    break

            if target == -1:
                target = len(lane_end)
                while conflicts_locked(target, col_start, col_end):
                    target += 1

        while len(lane_end) <= target:
            lane_end.append(None)
        current_end = lane_end[target]
        lane_end[target] = col_end if current_end is None else max(current_end, col_end)

        lane_item = cast(LaneItem, dict(p["item"]))
        lane_item["col_start"] = col_start
        lane_item["col_end"] = col_end
        lane_item["lane"] = target
        lane_item["clipped_left"] = p["clipped_left"]
        lane_item["clipped_right"] = p["clipped_right"]
        lanes.append(lane_item)

    return lanes


def _search_order(
    lane_total: int, held: Mapping[ClientId, int], client_id: ClientId
) -> list[int]:
    """
    Candidate lanes for an item: its sticky lane first, then outward from it.

    Only open lanes are candidates. The one exception is a sticky lane above
    them whose lower lanes are all still held by other items on the
    board, so the item keeps its row instead of dropping into a gap those
    items are about to fill. A sticky lane past that leaves empty rows and
    is ignored.
    """
    baseline = held.get(client_id)
    if baseline is None or baseline < 0:
        return list(range(lane_total))

    if baseline >= lane_total:
        others = {lane for cid, lane in held.items() if cid != client_id}
        if all(lane in others for lane in range(baseline)):
            return [baseline, *range(lane_total - 1, -1, -1)]
        baseline = lane_total - 1
        if baseline < 0:
            return []

    order = [baseline]
    for distance in range(1, lane_total):
        below = baseline - distance
        above = baseline + distance
        if below >= 0:
            order.append(below)
        if above < lane_total:
            order.append(above)
    return order


def render_sort_key(lane: LaneItem) -> tuple[int, int, str, str]:
    return (
        lane["lane"],
        lane["col_start"],
        lane["quiz_name"] or "",
        str(lane["client_id"]),
    )


def visible_lanes(
    lanes: list[LaneItem],
    visible_start_col: int,
    visible_end_col: int,
    active_id: Optional[ClientId] = None,
) -> list[LaneItem]:
    """
    Lanes intersecting the visible columns.

    The item under an active drag/resize stays mounted even when its span has
    scrolled out of view.
    """
    base = [
        lane
        for lane in lanes
        if lane["col_end"] >= visible_start_col
        and lane["col_start"] <= visible_end_col
    ]
    if active_id is None or any(lane["client_id"] == active_id for lane in base):
        return base

    active = next((lane for lane in lanes if lane["client_id"] == active_id), None)
    if active is None:
        return base
    return sorted([*base, active], key=render_sort_key)


def lane_count(lanes: list[LaneItem]) -> int:
    return max((lane["lane"] for lane in lanes), default=-1) + 1 or 1
