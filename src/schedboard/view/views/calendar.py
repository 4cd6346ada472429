# SPDX-License-Identifier: MIT

from typing import Optional

from rich import box
from rich.console import Console, Group
from rich.padding import Padding
from rich.table import Table
from rich.text import Text

from schedboard.color import (
    CLIP_MARKER_COLOR,
    PAST_DAY_COLOR,
    TODAY_COLOR,
    pill_color,
    text_color_for,
)
from schedboard.model.lane_item import LaneItem, Layout
from schedboard.model.notice import Notice
from schedboard.model.schedule_item import ScheduleItem
from schedboard.service.lanes import render_sort_key
from schedboard.time import add_days, day_key, format_month_day, format_weekday
from schedboard.view.views.header import header

SHORT_ID_LENGTH = 8


def short_id(item: ScheduleItem) -> str:
    return (item["server_id"] or item["client_id"])[:SHORT_ID_LENGTH]


def calendar_view(
    class_id: Optional[str],
    layout: Layout,
    tz: str,
    today: str,
    day_width: int = 14,
    console: Optional[Console] = None,
) -> None:
    """
    Draw the visible window as day columns with one row per lane.

    Pills span the columns of their visible days. A pill whose real range
    continues past the window gets a ◀ or ▶ on that side.

    Args:
        class_id: The class shown in the header
        layout: Packed lanes for the visible window
        tz: Timezone the day columns are expressed in
        today: Today's day key, highlighted in the header row
        day_width: Characters per day column
        console: Console to print to (defaults to a new one)
    """
    header(class_id, f"{layout['visible_start']} → {layout['visible_end']}")
    console = console or Console()

    days = _visible_days(layout)
    rows: list[Text] = [_day_header_row(days, tz, today, day_width)]

    separator = Text()
    separator.append("─" * (day_width * len(days)), style="dim")
    rows.append(separator)

    if len(layout["lanes"]) == 0:
        rows.append(Text("No quizzes scheduled in this window", style="dim"))
    else:
        for lane in range(layout["lane_count"]):
            lane_items = [item for item in layout["lanes"] if item["lane"] == lane]
            rows.append(_lane_row(lane_items, layout, day_width))

    console.print(Padding(Group(*rows), (1, 0, 1, 1)))


def _visible_days(layout: Layout) -> list[str]:
    days: list[str] = []
    day = layout["visible_start"]
    while day <= layout["visible_end"]:
        days.append(day)
        day = add_days(day, 1)
    return days


def _day_header_row(days: list[str], tz: str, today: str, day_width: int) -> Text:
    row = Text()
    for day in days:
        label = f"{format_weekday(day, tz)} {format_month_day(day, tz)}"
        label = label[: day_width - 1].center(day_width - 1) + " "
        if day == today:
            row.append(label[:-1], style=TODAY_COLOR)
            row.append(" ")
        elif day < today:
            row.append(label, style=PAST_DAY_COLOR)
        else:
            row.append(label, style="bold cyan")
    return row


def _lane_row(items: list[LaneItem], layout: Layout, day_width: int) -> Text:
    visible_start_col = layout["visible_start_col"]
    visible_end_col = layout["visible_end_col"]

    row = Text()
    cursor = visible_start_col
    for item in sorted(items, key=render_sort_key):
        start = max(item["col_start"], visible_start_col)
        end = min(item["col_end"], visible_end_col)
        if end < start or start < cursor:
            continue

        row.append(" " * ((start - cursor) * day_width))
        row.append_text(_pill(item, (end - start + 1) * day_width))
        cursor = end + 1

    row.append(" " * ((visible_end_col + 1 - cursor) * day_width))
    return row


def _pill(item: LaneItem, width: int) -> Text:
    background = pill_color(item["subject_color"])
    style = f"{text_color_for(background)} on {background}"
    inner = width - 1

    left = "◀" if item["clipped_left"] else ""
    right = "▶" if item["clipped_right"] else ""
    name = item["quiz_name"] or item["quiz_id"]
    room = max(0, inner - len(left) - len(right) - 2)
    if len(name) > room:
        name = name[: max(0, room - 1)] + "…" if room > 0 else ""
    body = f" {name} ".ljust(inner - len(left) - len(right))

    pill = Text()
    if left:
        pill.append(left, style=f"{CLIP_MARKER_COLOR} on {background}")
    pill.append(body, style=style)
    if right:
        pill.append(right, style=f"{CLIP_MARKER_COLOR} on {background}")
    pill.append(" ")
    return pill


def schedule_table(
    items: list[ScheduleItem],
    tz: str,
    pending: Optional[set[str]] = None,
    console: Optional[Console] = None,
) -> None:
    """List items with the short ids the CLI commands accept."""
    console = console or Console()
    if len(items) == 0:
        return

    table = Table(box=box.SIMPLE, show_edge=False)
    table.add_column("id", style="bright_black")
    table.add_column("quiz")
    table.add_column("subject")
    table.add_column("start")
    table.add_column("end")
    table.add_column("attempts", justify="right")
    table.add_column("answers")
    table.add_column("weight", justify="right")

    for item in sorted(items, key=lambda i: (i["start_date"], i["quiz_name"] or "")):
        item_id = short_id(item)
        if item["server_id"] is None or (pending and item["client_id"] in pending):
            item_id += " *"
        subject = Text(item["subject"] or "")
        if item["subject_color"]:
            subject.stylize(pill_color(item["subject_color"]))
        table.add_row(
            item_id,
            item["quiz_name"] or item["quiz_id"],
            subject,
            day_key(item["start_date"], tz),
            day_key(item["end_date"], tz),
            "" if item["attempts_allowed"] is None else str(item["attempts_allowed"]),
            {True: "after attempt", False: "hidden", None: ""}[
                item["show_answers_after_attempt"]
            ],
            "" if item["contribution"] is None else f"{item['contribution']:g}",
        )

    console.print(Padding(table, (0, 0, 1, 1)))


def notices_view(notices: list[Notice], console: Optional[Console] = None) -> None:
    console = console or Console()
    for notice in notices:
        color = "green" if notice["variant"] == "success" else "red"
        line = Text()
        line.append(notice["title"], style=f"bold {color}")
        if notice["description"]:
            line.append(f": {notice['description']}", style=color)
        console.print(line)
