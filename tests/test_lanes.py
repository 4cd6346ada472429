import random
import unittest
from typing import Optional

from schedboard.model.schedule_item import ScheduleItem
from schedboard.service.lanes import (
    build_lanes,
    lane_count,
    lanes_overlap,
    merge_previews,
    visible_lanes,
)
from schedboard.time import add_days, end_of_day, start_of_day

TZ = "UTC"
TRACK_START = "2024-03-01"
TRACK_END = "2024-03-21"
VISIBLE_START = "2024-03-08"
VISIBLE_END = "2024-03-14"


def _item(
    client_id: str, start: str, end: str, name: Optional[str] = None
) -> ScheduleItem:
    return {
        "client_id": client_id,
        "server_id": None,
        "quiz_id": f"quiz-{client_id}",
        "quiz_root_id": None,
        "quiz_version": None,
        "start_date": start_of_day(start, TZ),
        "end_date": end_of_day(end, TZ),
        "attempts_allowed": None,
        "show_answers_after_attempt": None,
        "contribution": 100,
        "quiz_name": name if name is not None else f"Quiz {client_id}",
        "subject": "Math",
        "subject_color": "#3366ff",
    }


def _pack(items: list[ScheduleItem], **kwargs) -> dict[str, int]:
    lanes = build_lanes(
        items, TRACK_START, TRACK_END, VISIBLE_START, VISIBLE_END, TZ, **kwargs
    )
    return {lane["client_id"]: lane["lane"] for lane in lanes}


class TestBuildLanes(unittest.TestCase):
    def test_overlapping_items_get_separate_lanes(self) -> None:
        items = [
            _item("1", "2024-03-04", "2024-03-06"),
            _item("2", "2024-03-05", "2024-03-05"),
        ]
        lanes = build_lanes(items, "2024-03-01", "2024-03-14", "2024-03-01", "2024-03-07", TZ)
        by_id = {lane["client_id"]: lane for lane in lanes}

        self.assertEqual(by_id["1"]["col_start"], 4)
        self.assertEqual(by_id["1"]["col_end"], 6)
        self.assertEqual(by_id["2"]["col_start"], 5)
        self.assertEqual(by_id["2"]["col_end"], 5)
        self.assertEqual({k: v["lane"] for k, v in by_id.items()}, {"1": 0, "2": 1})

    def test_back_to_back_items_share_a_lane(self) -> None:
        items = [
            _item("a", "2024-03-08", "2024-03-09"),
            _item("b", "2024-03-10", "2024-03-12"),
        ]
        self.assertEqual(_pack(items), {"a": 0, "b": 0})

    def test_single_day_item_occupies_one_column(self) -> None:
        lanes = build_lanes(
            [_item("a", "2024-03-10", "2024-03-10")],
            TRACK_START,
            TRACK_END,
            VISIBLE_START,
            VISIBLE_END,
            TZ,
        )
        self.assertEqual((lanes[0]["col_start"], lanes[0]["col_end"]), (10, 10))

    def test_items_outside_track_are_dropped(self) -> None:
        items = [
            _item("before", "2024-02-01", "2024-02-10"),
            _item("after", "2024-04-01", "2024-04-02"),
            _item("inside", "2024-03-09", "2024-03-09"),
        ]
        self.assertEqual(list(_pack(items)), ["inside"])

    def test_clipping_flags_follow_visible_window(self) -> None:
        items = [
            _item("left", "2024-03-06", "2024-03-09"),
            _item("right", "2024-03-13", "2024-03-16"),
            _item("both", "2024-02-20", "2024-03-30"),
            _item("inside", "2024-03-10", "2024-03-11"),
        ]
        lanes = build_lanes(items, TRACK_START, TRACK_END, VISIBLE_START, VISIBLE_END, TZ)
        flags = {
            lane["client_id"]: (lane["clipped_left"], lane["clipped_right"])
            for lane in lanes
        }
        self.assertEqual(flags["left"], (True, False))
        self.assertEqual(flags["right"], (False, True))
        self.assertEqual(flags["both"], (True, True))
        self.assertEqual(flags["inside"], (False, False))

        both = next(lane for lane in lanes if lane["client_id"] == "both")
        self.assertEqual((both["col_start"], both["col_end"]), (1, 21))

    def test_lanes_do_not_depend_on_input_order(self) -> None:
        items = [
            _item("a", "2024-03-08", "2024-03-10", name="Algebra"),
            _item("b", "2024-03-08", "2024-03-10", name="Biology"),
            _item("c", "2024-03-09", "2024-03-09", name="Chemistry"),
            _item("d", "2024-03-11", "2024-03-15", name="Drama"),
            _item("e", "2024-03-08", "2024-03-12", name="English"),
        ]
        expected = _pack(items)
        rng = random.Random(7)
        for _ in range(20):
            shuffled = items[:]
            rng.shuffle(shuffled)
            self.assertEqual(_pack(shuffled), expected)

    def test_ties_break_by_name(self) -> None:
        items = [
            _item("z", "2024-03-08", "2024-03-09", name="Zoology"),
            _item("a", "2024-03-08", "2024-03-09", name="Anatomy"),
        ]
        self.assertEqual(_pack(items), {"a": 0, "z": 1})

    def test_longer_item_packs_first_on_same_start(self) -> None:
        items = [
            _item("short", "2024-03-08", "2024-03-08"),
            _item("long", "2024-03-08", "2024-03-12"),
        ]
        self.assertEqual(_pack(items), {"long": 0, "short": 1})

    def test_overlapping_pairs_never_share_a_lane(self) -> None:
        rng = random.Random(42)
        for _ in range(25):
            items = []
            for i in range(12):
                start = add_days(TRACK_START, rng.randint(0, 18))
                end = add_days(start, rng.randint(0, 5))
                items.append(_item(str(i), start, end))
            lanes = build_lanes(
                items, TRACK_START, TRACK_END, VISIBLE_START, VISIBLE_END, TZ
            )
            for i, a in enumerate(lanes):
                for b in lanes[i + 1 :]:
                    if lanes_overlap(a, b):
                        self.assertNotEqual(a["lane"], b["lane"])


class TestStickyAndLock(unittest.TestCase):
    def test_sticky_lane_is_kept_when_span_still_fits(self) -> None:
        long = _item("long", "2024-03-01", "2024-03-10")
        mid = _item("mid", "2024-03-01", "2024-03-08")
        moved = _item("x", "2024-03-09", "2024-03-10")

        self.assertEqual(_pack([long, mid, moved])["x"], 1)
        sticky = {"long": 0, "mid": 1, "x": 2}
        self.assertEqual(_pack([long, mid, moved], sticky=sticky)["x"], 2)

    def test_sticky_search_falls_back_to_nearby_lanes(self) -> None:
        blocker = _item("blocker", "2024-03-08", "2024-03-12")
        x = _item("x", "2024-03-10", "2024-03-10")
        # x wants lane 0 but the blocker took it first
        packed = _pack([blocker, x], sticky={"blocker": 0, "x": 0})
        self.assertEqual(packed, {"blocker": 0, "x": 1})

    def test_stale_sticky_lane_does_not_open_empty_rows(self) -> None:
        x = _item("x", "2024-03-05", "2024-03-06")
        lanes = build_lanes(
            [x], TRACK_START, TRACK_END, VISIBLE_START, VISIBLE_END, TZ, sticky={"x": 3}
        )
        self.assertEqual(lanes[0]["lane"], 0)
        self.assertEqual(lane_count(lanes), 1)

    def test_sticky_lane_above_gap_falls_back_to_open_lanes(self) -> None:
        a = _item("a", "2024-03-01", "2024-03-10")
        x = _item("x", "2024-03-12", "2024-03-12")
        # lane 1 was held by an item that is no longer on the board
        packed = _pack([a, x], sticky={"a": 0, "gone": 1, "x": 2})
        self.assertEqual(packed, {"a": 0, "x": 0})

    def test_locked_item_keeps_its_lane(self) -> None:
        items = [
            _item("a", "2024-03-03", "2024-03-06"),
            _item("b", "2024-03-04", "2024-03-05"),
        ]
        self.assertEqual(_pack(items), {"a": 0, "b": 1})
        self.assertEqual(_pack(items, lane_lock={"a": 1}), {"a": 1, "b": 0})

    def test_new_lane_skips_conflicting_locked_lane(self) -> None:
        items = [
            _item("a", "2024-03-03", "2024-03-06"),
            _item("b", "2024-03-01", "2024-03-04"),
        ]
        packed = _pack(items, lane_lock={"a": 0})
        self.assertEqual(packed, {"a": 0, "b": 1})

    def test_lock_does_not_push_earlier_items(self) -> None:
        items = [
            _item("a", "2024-03-05", "2024-03-08"),
            _item("c", "2024-03-01", "2024-03-02"),
        ]
        self.assertEqual(_pack(items, lane_lock={"a": 0}), {"a": 0, "c": 0})

    def test_nothing_overlaps_the_locked_item_in_its_lane(self) -> None:
        rng = random.Random(3)
        for _ in range(25):
            items = [_item("locked", "2024-03-09", "2024-03-12")]
            for i in range(10):
                start = add_days(TRACK_START, rng.randint(0, 18))
                items.append(_item(str(i), start, add_days(start, rng.randint(0, 4))))
            lanes = build_lanes(
                items,
                TRACK_START,
                TRACK_END,
                VISIBLE_START,
                VISIBLE_END,
                TZ,
                lane_lock={"locked": 2},
            )
            locked = next(lane for lane in lanes if lane["client_id"] == "locked")
            self.assertEqual(locked["lane"], 2)
            for lane in lanes:
                if lane is locked or lane["lane"] != 2:
                    continue
                self.assertFalse(lanes_overlap(lane, locked))


class TestVisibleLanes(unittest.TestCase):
    def test_filters_to_visible_columns(self) -> None:
        items = [
            _item("early", "2024-03-02", "2024-03-03"),
            _item("shown", "2024-03-09", "2024-03-09"),
        ]
        lanes = build_lanes(items, TRACK_START, TRACK_END, VISIBLE_START, VISIBLE_END, TZ)
        shown = visible_lanes(lanes, 8, 14)
        self.assertEqual([lane["client_id"] for lane in shown], ["shown"])

    def test_active_item_stays_visible(self) -> None:
        items = [
            _item("early", "2024-03-02", "2024-03-03"),
            _item("shown", "2024-03-09", "2024-03-09"),
        ]
        lanes = build_lanes(items, TRACK_START, TRACK_END, VISIBLE_START, VISIBLE_END, TZ)
        shown = visible_lanes(lanes, 8, 14, active_id="early")
        self.assertEqual([lane["client_id"] for lane in shown], ["early", "shown"])

    def test_lane_count(self) -> None:
        self.assertEqual(lane_count([]), 1)
        items = [
            _item("1", "2024-03-09", "2024-03-10"),
            _item("2", "2024-03-09", "2024-03-09"),
        ]
        lanes = build_lanes(items, TRACK_START, TRACK_END, VISIBLE_START, VISIBLE_END, TZ)
        self.assertEqual(lane_count(lanes), 2)


class TestMergePreviews(unittest.TestCase):
    def test_preview_replaces_range(self) -> None:
        item = _item("a", "2024-03-08", "2024-03-09")
        preview = {
            "start_date": start_of_day("2024-03-11", TZ),
            "end_date": end_of_day("2024-03-12", TZ),
        }
        merged = merge_previews([item], {"a": preview})
        self.assertEqual(merged[0]["start_date"], preview["start_date"])
        self.assertEqual(merged[0]["quiz_name"], "Quiz a")
        # the original list is untouched
        self.assertEqual(item["start_date"], start_of_day("2024-03-08", TZ))


if __name__ == "__main__":
    unittest.main(verbosity=2)
