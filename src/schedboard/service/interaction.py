# SPDX-License-Identifier: MIT

import asyncio
import logging
import time
from typing import Callable, Optional

from schedboard.exceptions import InteractionError
from schedboard.model.entity_id import ClientId
from schedboard.model.interaction import (
    CommittedPatch,
    DatePreview,
    InteractionKind,
    ResizeEdge,
)
from schedboard.model.lane_item import LaneItem
from schedboard.model.schedule_item import ScheduleItem
from schedboard.service.track import Direction
from schedboard.time import add_days, day_key, diff_days, end_of_day, start_of_day

logger = logging.getLogger(__name__)

SLIDE_COOLDOWN_MS = 180
EDGE_HYSTERESIS_PX = 8
LOCK_SETTLE_MS = 100
COLUMN_WIDTH_PX = 120


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class InteractionTracker:
    """
    State machine behind pill drags and resizes.

    Idle -> Dragging(client_id) on a drag start, Idle -> Resizing(client_id,
    edge) on a resize-handle grab; end() or cancel() return to Idle. While
    active, the tracked item's range is replaced by a day-aligned preview.

    `on_page` is asked to page the track during an auto-slide. Returning
    False means the page was dropped; returning a future defers the anchor
    shift until it resolves to something other than False.
    """

    def __init__(
        self,
        tz: str,
        on_page: Optional[Callable[[Direction], object]] = None,
        clock: Callable[[], float] = _monotonic_ms,
        column_width_px: float = COLUMN_WIDTH_PX,
        viewport: tuple[float, float] = (0, COLUMN_WIDTH_PX * 7),
        slide_cooldown_ms: float = SLIDE_COOLDOWN_MS,
        edge_hysteresis_px: float = EDGE_HYSTERESIS_PX,
        lock_settle_ms: float = LOCK_SETTLE_MS,
    ) -> None:
        self.tz = tz
        self.on_page = on_page
        self.clock = clock
        self.column_width_px = column_width_px
        self.viewport = viewport
        self.slide_cooldown_ms = slide_cooldown_ms
        self.edge_hysteresis_px = edge_hysteresis_px
        self.lock_settle_ms = lock_settle_ms

        self.kind = InteractionKind.IDLE
        self.client_id: Optional[ClientId] = None
        self.edge: Optional[ResizeEdge] = None

        self._start_day: Optional[str] = None
        self._end_day: Optional[str] = None
        self._anchor_x: Optional[float] = None
        self._anchor_offset_days = 0
        self._slid_days = 0
        self._last_slide_at: Optional[float] = None
        self._last_pointer_x: Optional[float] = None
        self._session = 0
        self._preview: Optional[DatePreview] = None

        self._sticky: dict[ClientId, int] = {}
        self._lock: dict[ClientId, int] = {}
        self._lock_release_at: Optional[float] = None

    @property
    def active_id(self) -> Optional[ClientId]:
        return self.client_id

    @property
    def is_active(self) -> bool:
        return self.kind is not InteractionKind.IDLE

    def start_drag(
        self,
        item: ScheduleItem,
        pointer_x: Optional[float] = None,
        grabbed_day: Optional[str] = None,
        visible: Optional[list[LaneItem]] = None,
    ) -> None:
        """
        Begin moving an item.

        Args:
            item: The item being dragged
            pointer_x: Viewport-relative x of the pointer at drag start
            grabbed_day: Day cell under the pointer, to preserve the grab offset
            visible: Currently visible lanes, frozen as sticky preferences
        """
        self.__begin(item, InteractionKind.DRAGGING, pointer_x)
        if grabbed_day is not None and self._start_day is not None:
            self._anchor_offset_days = diff_days(grabbed_day, self._start_day)

        if not self._lock and visible is not None:
            self._sticky = {lane["client_id"]: lane["lane"] for lane in visible}
        logger.debug(
            "drag start %s (anchor offset %d days)",
            self.client_id,
            self._anchor_offset_days,
        )

    def start_resize(
        self,
        item: ScheduleItem,
        edge: ResizeEdge,
        pointer_x: Optional[float] = None,
        visible: Optional[list[LaneItem]] = None,
    ) -> None:
        self.__begin(item, InteractionKind.RESIZING, pointer_x)
        self.edge = edge

        self._sticky = {}
        self._lock_release_at = None
        lane = None
        if visible is not None:
            lane = next(
                (v["lane"] for v in visible if v["client_id"] == item["client_id"]),
                None,
            )
        self._lock = {item["client_id"]: lane} if lane is not None else {}
        logger.debug("resize start %s (%s edge)", self.client_id, edge.value)

    def __begin(
        self, item: ScheduleItem, kind: InteractionKind, pointer_x: Optional[float]
    ) -> None:
        if self.is_active:
            raise InteractionError(
                f"cannot start {kind.value} while {self.kind.value} {self.client_id}"
            )
        self.kind = kind
        self.client_id = item["client_id"]
        self.edge = None
        self._start_day = day_key(item["start_date"], self.tz)
        self._end_day = day_key(item["end_date"], self.tz)
        self._anchor_x = pointer_x
        self._last_pointer_x = pointer_x
        self._session += 1
        self._anchor_offset_days = 0
        self._slid_days = 0
        self._last_slide_at = None
        self._preview = None

    def move(self, pointer_x: Optional[float] = None, over_day: Optional[str] = None) -> None:
        """
        Feed a pointer move.

        `over_day` is the day cell under the pointer when the surface knows
        it; otherwise the day delta comes from the horizontal pointer travel.
        """
        if not self.is_active:
            return

        if pointer_x is not None:
            self._last_pointer_x = pointer_x
        if self.kind is InteractionKind.DRAGGING and pointer_x is not None:
            self.__maybe_auto_slide(pointer_x)

        target_delta = self.__day_delta(pointer_x, over_day)
        if target_delta is None:
            return
        self._preview = self.__preview_for(target_delta)

    def __day_delta(
        self, pointer_x: Optional[float], over_day: Optional[str]
    ) -> Optional[int]:
        assert self._start_day is not None and self._end_day is not None
        if over_day is not None:
            if self.kind is InteractionKind.DRAGGING:
                return diff_days(over_day, self._start_day) - self._anchor_offset_days
            if self.edge is ResizeEdge.LEFT:
                return diff_days(over_day, self._start_day)
            return diff_days(over_day, self._end_day)

        if pointer_x is None or self._anchor_x is None:
            return None
        travelled = round((pointer_x - self._anchor_x) / self.column_width_px)
        return travelled + self._slid_days

    def __preview_for(self, delta: int) -> DatePreview:
        assert self._start_day is not None and self._end_day is not None
        start_day = self._start_day
        end_day = self._end_day

        if self.kind is InteractionKind.DRAGGING:
            span = diff_days(end_day, start_day)
            start_day = add_days(start_day, delta)
            end_day = add_days(start_day, span)
        elif self.edge is ResizeEdge.LEFT:
            start_day = add_days(start_day, delta)
            if start_day > end_day:
                start_day = end_day
        else:
            end_day = add_days(end_day, delta)
            if end_day < start_day:
                end_day = start_day

        return {
            "start_date": start_of_day(start_day, self.tz),
            "end_date": end_of_day(end_day, self.tz),
        }

    def __maybe_auto_slide(self, pointer_x: float) -> None:
        now = self.clock()
        if (
            self._last_slide_at is not None
            and now - self._last_slide_at < self.slide_cooldown_ms
        ):
            return

        left, right = self.viewport
        direction: Optional[Direction] = None
        if pointer_x < left - self.edge_hysteresis_px:
            direction = -1
        elif pointer_x > right + self.edge_hysteresis_px:
            direction = 1
        if direction is None:
            return

        self._last_slide_at = now
        logger.debug("auto-slide %+d while dragging %s", direction, self.client_id)
        result = self.on_page(direction) if self.on_page is not None else None
        if isinstance(result, asyncio.Future):
            session = self._session
            result.add_done_callback(
                lambda page: self.__page_settled(page, direction, session)
            )
        elif result is not False:
            self.__slid(direction)

    def __page_settled(
        self, page: asyncio.Future, direction: Direction, session: int
    ) -> None:
        if page.cancelled():
            return
        error = page.exception()
        if error is not None:
            logger.error("auto-slide page failed", exc_info=error)
            return
        if page.result() is False:
            logger.debug("auto-slide %+d dropped by the track", direction)
            return
        if session != self._session or self.kind is not InteractionKind.DRAGGING:
            return
        self.__slid(direction)
        delta = self.__day_delta(self._last_pointer_x, None)
        if delta is not None:
            self._preview = self.__preview_for(delta)

    def __slid(self, direction: Direction) -> None:
        # Columns shift under a stationary pointer, so the anchor moves with them
        self._slid_days += direction

    def end(self) -> Optional[CommittedPatch]:
        """
        Release the pointer. Dropping always commits the current preview.

        Returns None when nothing is active or the day range is unchanged.
        """
        if not self.is_active:
            return None

        patch: Optional[CommittedPatch] = None
        preview = self._preview
        if preview is not None and self.client_id is not None:
            unchanged = (
                day_key(preview["start_date"], self.tz) == self._start_day
                and day_key(preview["end_date"], self.tz) == self._end_day
            )
            if not unchanged:
                patch = {
                    "client_id": self.client_id,
                    "kind": self.kind,
                    "start_date": preview["start_date"],
                    "end_date": preview["end_date"],
                }

        logger.debug("%s end %s -> %s", self.kind.value, self.client_id, patch)
        self.__finish()
        return patch

    def cancel(self) -> None:
        if not self.is_active:
            return
        logger.debug("%s cancelled %s", self.kind.value, self.client_id)
        self.__finish()

    def __finish(self) -> None:
        if self.kind is InteractionKind.RESIZING and self._lock:
            # Keep the lane lock briefly so the drop frame does not jump lanes
            self._lock_release_at = self.clock() + self.lock_settle_ms
        self._sticky = {}
        self.kind = InteractionKind.IDLE
        self.client_id = None
        self.edge = None
        self._preview = None
        self._anchor_x = None
        self._anchor_offset_days = 0
        self._slid_days = 0
        self._last_pointer_x = None

    def previews(self) -> dict[ClientId, DatePreview]:
        if self.client_id is None or self._preview is None:
            return {}
        return {self.client_id: self._preview}

    def sticky_map(self) -> dict[ClientId, int]:
        return dict(self._sticky)

    def lane_lock_map(self) -> dict[ClientId, int]:
        if self._lock_release_at is not None and self.clock() >= self._lock_release_at:
            self._lock = {}
            self._lock_release_at = None
        return dict(self._lock)

    @property
    def anchor_offset_days(self) -> int:
        return self._anchor_offset_days
