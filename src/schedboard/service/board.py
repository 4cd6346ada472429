# SPDX-License-Identifier: MIT

import asyncio
import logging
from typing import Callable, NoReturn, Optional, cast

import pendulum

from schedboard.exceptions import ScheduleRuleError
from schedboard.model.entity_id import ClientId, ServerId
from schedboard.model.interaction import CommittedPatch, InteractionKind, ResizeEdge
from schedboard.model.lane_item import Layout
from schedboard.model.schedule_item import QuizSummary, ScheduleItem, SchedulePatch
from schedboard.service.interaction import InteractionTracker
from schedboard.service.lanes import build_lanes, lane_count, merge_previews, visible_lanes
from schedboard.service.notice import Notify, format_field_errors, make_notice
from schedboard.service.queue import MutationQueue
from schedboard.service.track import Direction, Track
from schedboard.template.schedule_item import (
    DEFAULT_CONTRIBUTION,
    get_schedule_item_template,
)
from schedboard.time import day_key, end_of_day, is_day_key, now_utc, start_of_day

logger = logging.getLogger(__name__)

__all__ = ["SchedulerBoard", "format_field_errors"]

STARTED_MESSAGE = "The start date can’t be changed after the quiz has started."


class SchedulerBoard:
    """
    One calendar session: the track, the pointer tracker, lane packing and
    the mutation queue, plus the rules a drop has to pass before it becomes
    a queued mutation.
    """

    def __init__(
        self,
        queue: MutationQueue,
        track: Track,
        tracker: Optional[InteractionTracker] = None,
        notify: Optional[Notify] = None,
        now: Callable[[], pendulum.DateTime] = now_utc,
    ) -> None:
        self.queue = queue
        self.track = track
        self.tracker = tracker or InteractionTracker(track.tz, on_page=self.request_page)
        self.notify = notify
        self.now = now
        self._peak_lane_count = 0
        self._page_tasks: set[asyncio.Task] = set()

    @property
    def tz(self) -> str:
        return self.track.tz

    def today(self) -> str:
        return day_key(self.now(), self.tz)

    def layout(self) -> Layout:
        tracker = self.tracker
        items = merge_previews(self.queue.items, tracker.previews())
        lock = tracker.lane_lock_map()
        lanes = build_lanes(
            items,
            self.track.track_start,
            self.track.track_end,
            self.track.visible_start,
            self.track.visible_end,
            self.tz,
            lane_lock=lock,
            sticky=tracker.sticky_map(),
        )
        visible = visible_lanes(
            lanes,
            self.track.visible_start_col,
            self.track.visible_end_col,
            tracker.active_id,
        )

        count = lane_count(visible)
        if tracker.is_active or lock:
            # No compaction until the interaction is over
            count = max(count, self._peak_lane_count)
            self._peak_lane_count = count
        else:
            self._peak_lane_count = 0

        return {
            "lanes": visible,
            "lane_count": count,
            "track_start": self.track.track_start,
            "track_end": self.track.track_end,
            "visible_start": self.track.visible_start,
            "visible_end": self.track.visible_end,
            "visible_start_col": self.track.visible_start_col,
            "visible_end_col": self.track.visible_end_col,
        }

    #
    # Paging
    #

    def request_page(self, direction: Direction) -> asyncio.Task[bool]:
        """Page used by auto-slide; the task resolves to False if it was dropped."""
        task = asyncio.get_running_loop().create_task(self.track.page(direction))
        self._page_tasks.add(task)
        task.add_done_callback(self._page_tasks.discard)
        return task

    async def page(self, direction: Direction) -> bool:
        return await self.track.page(direction)

    async def go_to_date(self, target: str) -> None:
        await self.track.go_to_date(target)

    #
    # Pointer interactions
    #

    def start_drag(
        self,
        client_id: ClientId,
        pointer_x: Optional[float] = None,
        grabbed_day: Optional[str] = None,
    ) -> None:
        item = self.__require(client_id)
        self.tracker.start_drag(item, pointer_x, grabbed_day, self.layout()["lanes"])

    def start_resize(
        self, client_id: ClientId, edge: ResizeEdge, pointer_x: Optional[float] = None
    ) -> None:
        item = self.__require(client_id)
        self.tracker.start_resize(item, edge, pointer_x, self.layout()["lanes"])

    def move(self, pointer_x: Optional[float] = None, over_day: Optional[str] = None) -> None:
        self.tracker.move(pointer_x, over_day)

    def end(self) -> bool:
        """Release the pointer and commit whatever the preview shows."""
        patch = self.tracker.end()
        if patch is None:
            return False
        return self.commit(patch)

    #
    # Mutations
    #

    def drop_quiz(self, quiz: QuizSummary, day: str) -> asyncio.Task[ServerId]:
        """Place a quiz on `day` as a one-day item and start creating it."""
        if not is_day_key(day):
            raise ScheduleRuleError(f"Invalid day: {day!r}")
        if day < self.today():
            self.__reject("Not allowed", "You can’t schedule on a past date.")
        if not (
            quiz.get("id")
            and quiz.get("title")
            and quiz.get("subject")
            and quiz.get("subject_color")
        ):
            self.__reject(
                "Missing data",
                "This quiz row is missing required fields (name, subject, or color).",
            )

        item = get_schedule_item_template()
        item.update(
            {
                "quiz_id": quiz["id"],
                "quiz_root_id": quiz.get("root_id"),
                "quiz_version": quiz.get("version"),
                "start_date": start_of_day(day, self.tz),
                "end_date": end_of_day(day, self.tz),
                "contribution": DEFAULT_CONTRIBUTION,
                "quiz_name": quiz["title"],
                "subject": quiz["subject"],
                "subject_color": quiz["subject_color"],
            }
        )
        logger.debug("dropping quiz %s on %s as %s", quiz["id"], day, item["client_id"])
        return self.queue.create(item)

    def commit(self, patch: CommittedPatch) -> bool:
        """
        Turn a finished drag or resize into a queued edit.

        Only the fields whose day actually changed are sent.
        """
        item = self.__require(patch["client_id"])
        old_start = day_key(item["start_date"], self.tz)
        old_end = day_key(item["end_date"], self.tz)
        new_start = day_key(patch["start_date"], self.tz)
        new_end = day_key(patch["end_date"], self.tz)
        start_changed = new_start != old_start

        if start_changed and self.has_started(item):
            self.__reject("Not allowed", STARTED_MESSAGE)
        if start_changed and new_start < self.today():
            if patch["kind"] is InteractionKind.DRAGGING:
                self.__reject("Not allowed", "You can’t move a quiz to a past date.")
            self.__reject("Not allowed", "Start date can’t be set to a past day.")

        fields: SchedulePatch = {}
        if start_changed:
            fields["start_date"] = patch["start_date"]
        if new_end != old_end:
            fields["end_date"] = patch["end_date"]
        if len(fields) == 0:
            return False
        return self.queue.edit(patch["client_id"], fields)

    def move_item(self, client_id: ClientId, to_day: str) -> bool:
        """Move an item so it starts on `to_day`, keeping its length."""
        item = self.__require(client_id)
        self.tracker.start_drag(item, grabbed_day=day_key(item["start_date"], self.tz))
        self.tracker.move(over_day=to_day)
        return self.end()

    def resize_item(self, client_id: ClientId, edge: ResizeEdge, to_day: str) -> bool:
        item = self.__require(client_id)
        self.tracker.start_resize(item, edge, visible=self.layout()["lanes"])
        self.tracker.move(over_day=to_day)
        return self.end()

    def edit_settings(
        self,
        client_id: ClientId,
        attempts_allowed: Optional[int] = None,
        show_answers_after_attempt: Optional[bool] = None,
        contribution: Optional[float] = None,
    ) -> bool:
        self.__require(client_id)
        fields: SchedulePatch = {}
        if attempts_allowed is not None:
            if attempts_allowed < 1:
                self.__reject("Not allowed", "Attempts allowed must be at least 1.")
            fields["attempts_allowed"] = attempts_allowed
        if show_answers_after_attempt is not None:
            fields["show_answers_after_attempt"] = show_answers_after_attempt
        if contribution is not None:
            if contribution < 0:
                self.__reject("Not allowed", "Contribution can’t be negative.")
            fields["contribution"] = contribution
        if len(fields) == 0:
            return False
        return self.queue.edit(client_id, fields)

    def drop_outside(self, client_id: ClientId) -> bool:
        """A pill released outside the calendar is deleted."""
        self.tracker.cancel()
        return self.queue.delete(client_id)

    def has_started(self, item: ScheduleItem) -> bool:
        return item["start_date"] <= self.now()

    def find(self, id_or_prefix: str) -> Optional[ScheduleItem]:
        """Look an item up by client id, server id, or a unique prefix of either."""
        items = self.queue.items
        for item in items:
            if id_or_prefix in (item["client_id"], item["server_id"]):
                return item
        matches = [
            item
            for item in items
            if item["client_id"].startswith(id_or_prefix)
            or (item["server_id"] or "").startswith(id_or_prefix)
        ]
        return matches[0] if len(matches) == 1 else None

    def __require(self, client_id: ClientId) -> ScheduleItem:
        item = self.queue.get(client_id)
        if item is None:
            raise ScheduleRuleError(f"No schedule item {client_id}")
        return item

    def __reject(self, title: str, description: str) -> NoReturn:
        if self.notify is not None:
            self.notify(make_notice(title, description, "error"))
        raise ScheduleRuleError(description)


def quiz_summary(
    quiz_id: str,
    title: Optional[str],
    subject: Optional[str],
    subject_color: Optional[str],
) -> QuizSummary:
    return cast(
        QuizSummary,
        {"id": quiz_id, "title": title, "subject": subject, "subject_color": subject_color},
    )
