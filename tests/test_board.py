import asyncio
import unittest
from typing import Optional

import pendulum

from schedboard.exceptions import ScheduleRuleError
from schedboard.model.interaction import ResizeEdge
from schedboard.model.notice import Notice
from schedboard.model.remote import RemoteResult
from schedboard.model.schedule_item import ScheduleItem, SchedulePatch
from schedboard.service.board import SchedulerBoard, format_field_errors, quiz_summary
from schedboard.service.queue import MutationQueue
from schedboard.service.track import Track
from schedboard.time import day_key, end_of_day, start_of_day

TZ = "Europe/Berlin"
NOW = pendulum.datetime(2024, 3, 6, 12, tz=TZ)


def _item(
    client_id: str, start: str, end: str, server_id: Optional[str] = None
) -> ScheduleItem:
    return {
        "client_id": client_id,
        "server_id": server_id or f"srv-{client_id}",
        "quiz_id": f"quiz-{client_id}",
        "quiz_root_id": None,
        "quiz_version": None,
        "start_date": start_of_day(start, TZ),
        "end_date": end_of_day(end, TZ),
        "attempts_allowed": 1,
        "show_answers_after_attempt": None,
        "contribution": 100,
        "quiz_name": f"Quiz {client_id}",
        "subject": "Math",
        "subject_color": "#3366ff",
    }


class RecordingService:
    def __init__(self) -> None:
        self.edits: list[tuple[str, SchedulePatch]] = []
        self.deletes: list[str] = []
        self.creates: list[ScheduleItem] = []

    async def create(self, item: ScheduleItem) -> RemoteResult:
        self.creates.append(item)
        return {"ok": True, "data": {**item, "server_id": "srv-new"}}

    async def edit(self, server_id: str, patch: SchedulePatch) -> RemoteResult:
        self.edits.append((server_id, patch))
        return {"ok": True}

    async def delete(self, server_id: str) -> RemoteResult:
        self.deletes.append(server_id)
        return {"ok": True}

    async def list(self) -> RemoteResult:
        return {"ok": True, "data": []}


class BoardTestCase(unittest.IsolatedAsyncioTestCase):
    def make_board(self, items: list[ScheduleItem]) -> SchedulerBoard:
        self.service = RecordingService()
        self.notices: list[Notice] = []
        queue = MutationQueue(self.service, items, notify=self.notices.append)
        track = Track("2024-03-06", TZ)
        return SchedulerBoard(queue, track, notify=self.notices.append, now=lambda: NOW)

    def assert_rejected(self, description: str) -> None:
        self.assertEqual(self.notices[-1]["variant"], "error")
        self.assertEqual(self.notices[-1]["description"], description)


class TestLayout(BoardTestCase):
    async def test_layout_reports_window_and_lanes(self) -> None:
        board = self.make_board(
            [_item("a", "2024-03-08", "2024-03-09"), _item("b", "2024-03-08", "2024-03-08")]
        )
        layout = board.layout()

        self.assertEqual(layout["visible_start"], "2024-03-06")
        self.assertEqual(layout["visible_end"], "2024-03-12")
        self.assertEqual(layout["track_start"], "2024-02-28")
        self.assertEqual(layout["track_end"], "2024-03-19")
        self.assertEqual(layout["lane_count"], 2)
        self.assertEqual({lane["client_id"]: lane["lane"] for lane in layout["lanes"]}, {"a": 0, "b": 1})

    async def test_lane_count_does_not_shrink_mid_drag(self) -> None:
        board = self.make_board(
            [_item("a", "2024-03-08", "2024-03-09"), _item("b", "2024-03-08", "2024-03-08")]
        )
        board.start_drag("b", grabbed_day="2024-03-08")
        self.assertEqual(board.layout()["lane_count"], 2)

        # past the end of the track, so b drops out of the packed lanes
        board.move(over_day="2024-03-25")
        self.assertEqual(board.layout()["lane_count"], 2)

        self.assertTrue(board.end())
        self.assertEqual(board.layout()["lane_count"], 1)

    async def test_preview_is_packed_live(self) -> None:
        board = self.make_board([_item("a", "2024-03-08", "2024-03-09")])
        board.start_drag("a", grabbed_day="2024-03-08")
        board.move(over_day="2024-03-10")
        lane = board.layout()["lanes"][0]
        self.assertEqual(day_key(lane["start_date"], TZ), "2024-03-10")
        board.tracker.cancel()


class TestAutoSlide(BoardTestCase):
    async def settle(self) -> None:
        for _ in range(3):
            await asyncio.sleep(0)

    def preview_start(self, board: SchedulerBoard) -> str:
        [lane] = [lane for lane in board.layout()["lanes"] if lane["client_id"] == "a"]
        return day_key(lane["start_date"], TZ)

    async def test_page_dropped_while_sliding_keeps_preview_on_window(self) -> None:
        board = self.make_board([_item("a", "2024-03-08", "2024-03-08")])
        board.track.is_sliding = True
        board.start_drag("a", pointer_x=650)
        board.move(pointer_x=850)
        await self.settle()

        self.assertEqual(board.track.window_start, "2024-03-06")
        # two columns of pointer travel, no slid day
        self.assertEqual(self.preview_start(board), "2024-03-10")
        board.tracker.cancel()

    async def test_applied_page_shifts_preview(self) -> None:
        board = self.make_board([_item("a", "2024-03-08", "2024-03-08")])
        board.start_drag("a", pointer_x=650)
        board.move(pointer_x=850)
        self.assertEqual(self.preview_start(board), "2024-03-10")
        await self.settle()

        self.assertEqual(board.track.window_start, "2024-03-07")
        self.assertEqual(self.preview_start(board), "2024-03-11")
        board.tracker.cancel()


class TestDropQuiz(BoardTestCase):
    async def test_drop_creates_one_day_item(self) -> None:
        board = self.make_board([])
        quiz = quiz_summary("q1", "Fractions", "Math", "#ff8800")
        server_id = await board.drop_quiz(quiz, "2024-03-07")

        self.assertEqual(server_id, "srv-new")
        [item] = board.queue.items
        self.assertEqual(item["start_date"], start_of_day("2024-03-07", TZ))
        self.assertEqual(item["end_date"], end_of_day("2024-03-07", TZ))
        self.assertEqual(item["contribution"], 100)
        self.assertEqual(item["quiz_name"], "Fractions")
        self.assertEqual(self.service.creates[0]["quiz_id"], "q1")

    async def test_drop_today_is_allowed(self) -> None:
        board = self.make_board([])
        await board.drop_quiz(quiz_summary("q1", "Fractions", "Math", "#ff8800"), "2024-03-06")
        self.assertEqual(len(board.queue.items), 1)

    async def test_drop_on_past_day_is_refused(self) -> None:
        board = self.make_board([])
        with self.assertRaises(ScheduleRuleError):
            board.drop_quiz(quiz_summary("q1", "Fractions", "Math", "#ff8800"), "2024-03-05")
        self.assert_rejected("You can’t schedule on a past date.")
        self.assertEqual(self.notices[-1]["title"], "Not allowed")
        self.assertEqual(board.queue.items, [])

    async def test_quiz_without_color_is_refused(self) -> None:
        board = self.make_board([])
        with self.assertRaises(ScheduleRuleError):
            board.drop_quiz(quiz_summary("q1", "Fractions", "Math", None), "2024-03-07")
        self.assertEqual(self.notices[-1]["title"], "Missing data")


class TestCommit(BoardTestCase):
    async def test_move_keeps_length(self) -> None:
        board = self.make_board([_item("a", "2024-03-08", "2024-03-09")])
        self.assertTrue(board.move_item("a", "2024-03-11"))
        await board.queue.join()

        [(server_id, patch)] = self.service.edits
        self.assertEqual(server_id, "srv-a")
        self.assertEqual(patch["start_date"], start_of_day("2024-03-11", TZ))
        self.assertEqual(patch["end_date"], end_of_day("2024-03-12", TZ))

    async def test_started_quiz_cannot_move(self) -> None:
        board = self.make_board([_item("s", "2024-03-05", "2024-03-07")])
        with self.assertRaises(ScheduleRuleError):
            board.move_item("s", "2024-03-08")
        self.assert_rejected("The start date can’t be changed after the quiz has started.")
        self.assertFalse(board.tracker.is_active)

    async def test_started_quiz_can_extend_its_end(self) -> None:
        board = self.make_board([_item("s", "2024-03-05", "2024-03-07")])
        self.assertTrue(board.resize_item("s", ResizeEdge.RIGHT, "2024-03-10"))
        await board.queue.join()
        [(_, patch)] = self.service.edits
        self.assertEqual(list(patch), ["end_date"])

    async def test_move_into_past_is_refused(self) -> None:
        board = self.make_board([_item("a", "2024-03-08", "2024-03-09")])
        with self.assertRaises(ScheduleRuleError):
            board.move_item("a", "2024-03-04")
        self.assert_rejected("You can’t move a quiz to a past date.")

    async def test_left_resize_into_past_is_refused(self) -> None:
        board = self.make_board([_item("a", "2024-03-08", "2024-03-09")])
        with self.assertRaises(ScheduleRuleError):
            board.resize_item("a", ResizeEdge.LEFT, "2024-03-01")
        self.assert_rejected("Start date can’t be set to a past day.")

    async def test_unchanged_drop_queues_nothing(self) -> None:
        board = self.make_board([_item("a", "2024-03-08", "2024-03-09")])
        self.assertFalse(board.move_item("a", "2024-03-08"))
        await board.queue.join()
        self.assertEqual(self.service.edits, [])


class TestSettingsAndDelete(BoardTestCase):
    async def test_edit_settings(self) -> None:
        board = self.make_board([_item("a", "2024-03-08", "2024-03-09")])
        self.assertTrue(
            board.edit_settings("a", attempts_allowed=3, show_answers_after_attempt=True)
        )
        await board.queue.join()
        self.assertEqual(
            self.service.edits,
            [("srv-a", {"attempts_allowed": 3, "show_answers_after_attempt": True})],
        )

    async def test_attempts_must_be_positive(self) -> None:
        board = self.make_board([_item("a", "2024-03-08", "2024-03-09")])
        with self.assertRaises(ScheduleRuleError):
            board.edit_settings("a", attempts_allowed=0)

    async def test_drop_outside_deletes(self) -> None:
        board = self.make_board([_item("a", "2024-03-08", "2024-03-09")])
        self.assertTrue(board.drop_outside("a"))
        await board.queue.join()
        self.assertEqual(self.service.deletes, ["srv-a"])
        self.assertEqual(board.queue.items, [])

    async def test_find_by_prefix(self) -> None:
        board = self.make_board(
            [_item("c-123", "2024-03-08", "2024-03-09", server_id="665f00aa")]
        )
        item = board.find("665f")
        assert item is not None
        self.assertEqual(item["client_id"], "c-123")
        self.assertIsNone(board.find("zzz"))


class TestFormatFieldErrors(unittest.TestCase):
    def test_formats_lists_and_scalars(self) -> None:
        self.assertEqual(format_field_errors(None), "")
        self.assertEqual(format_field_errors({}), "")
        self.assertEqual(
            format_field_errors({"startDate": ["required", "past"], "attempts": 3, "x": None}),
            "\nstartDate: required, past\nattempts: 3",
        )


if __name__ == "__main__":
    unittest.main(verbosity=2)
