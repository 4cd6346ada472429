# SPDX-License-Identifier: MIT

import logging
from typing import Any, Awaitable, Callable, Literal, Optional

from schedboard.time import add_days, diff_days, is_day_key, resolve_timezone, today_key

logger = logging.getLogger(__name__)

VISIBLE_DAYS = 7
BUFFER = 7  # extra columns on each side of the visible window
TRACK_COLS = VISIBLE_DAYS + BUFFER * 2
MAX_GOTO_STEPS = 12

type Direction = Literal[1, -1]
type SlideAnimation = Callable[[Direction], Awaitable[None]]


class Track:
    """
    The scrollable strip of day columns behind the calendar.

    The visible window is `visible_days` wide; the track extends `buffer`
    days past it on both sides so a one-day page can be animated without
    empty columns sliding into view.
    """

    def __init__(
        self,
        window_start: str,
        tz: str,
        visible_days: int = VISIBLE_DAYS,
        buffer: int = BUFFER,
        max_goto_steps: int = MAX_GOTO_STEPS,
        animate: Optional[SlideAnimation] = None,
    ) -> None:
        resolve_timezone(tz)
        if not is_day_key(window_start):
            raise ValueError(f"Invalid day key: {window_start!r}")
        if visible_days < 1:
            raise ValueError("visible_days must be at least 1")
        if buffer < 0:
            raise ValueError("buffer cannot be negative")
        self.window_start = window_start
        self.tz = tz
        self.visible_days = visible_days
        self.buffer = buffer
        self.max_goto_steps = max_goto_steps
        self.animate = animate
        self.is_sliding = False

    @classmethod
    def for_today(cls, tz: str, **kwargs: Any) -> "Track":
        return cls(today_key(tz), tz, **kwargs)

    @property
    def visible_start(self) -> str:
        return self.window_start

    @property
    def visible_end(self) -> str:
        return add_days(self.window_start, self.visible_days - 1)

    @property
    def track_start(self) -> str:
        return add_days(self.window_start, -self.buffer)

    @property
    def track_end(self) -> str:
        return add_days(self.window_start, self.visible_days - 1 + self.buffer)

    @property
    def track_cols(self) -> int:
        return self.visible_days + self.buffer * 2

    @property
    def visible_start_col(self) -> int:
        return 1 + self.buffer

    @property
    def visible_end_col(self) -> int:
        return self.visible_start_col + self.visible_days - 1

    def day_keys(self) -> list[str]:
        return [add_days(self.track_start, i) for i in range(self.track_cols)]

    def visible_day_keys(self) -> list[str]:
        return [add_days(self.window_start, i) for i in range(self.visible_days)]

    async def page(self, direction: int) -> bool:
        """
        Shift the window by one day.

        Returns False without doing anything if a slide is already running;
        callers that need the page re-issue it on their next trigger.
        """
        if direction not in (1, -1):
            raise ValueError(f"direction must be 1 or -1, got {direction}")
        if self.is_sliding:
            logger.debug("page %+d dropped, slide in progress", direction)
            return False

        self.is_sliding = True
        try:
            if self.animate is not None:
                await self.animate(direction)  # type: ignore[arg-type]
            self.window_start = add_days(self.window_start, direction)
        finally:
            self.is_sliding = False

        logger.debug("paged %+d, window starts %s", direction, self.window_start)
        return True

    async def go_to_date(self, target: str) -> None:
        """
        Move the window to start on `target`.

        Near targets are reached with animated single-day pages; the step
        count is capped and the remainder is covered by a direct snap.
        """
        delta = diff_days(target, self.window_start)
        if delta == 0:
            return

        direction: Direction = 1 if delta > 0 else -1
        steps = min(self.max_goto_steps, abs(delta))
        for _ in range(steps):
            await self.page(direction)

        if self.window_start != target:
            self.snap_to(target)

    def snap_to(self, target: str) -> None:
        diff_days(target, self.window_start)  # validates the key
        self.window_start = target
        logger.debug("snapped window to %s", target)
