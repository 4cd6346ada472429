# SPDX-License-Identifier: MIT

import asyncio
from typing import Annotated, Awaitable, Callable, Optional

import typer
from rich.console import Console

from schedboard.configuration import Configuration
from schedboard.exceptions import RemoteError, ScheduleError
from schedboard.model.interaction import ResizeEdge
from schedboard.model.notice import Notice
from schedboard.model.schedule_item import ScheduleItem
from schedboard.repository.configuration import CONFIGURATION_REPO
from schedboard.repository.schedule import HttpScheduleService, with_client_ids
from schedboard.service.board import SchedulerBoard, quiz_summary
from schedboard.service.interaction import InteractionTracker
from schedboard.service.queue import MutationQueue
from schedboard.service.track import Track
from schedboard.terminal.custom_typer import ClassAwareTyperGroup
from schedboard.terminal.parse import parse_color, parse_day
from schedboard.time import day_key
from schedboard.view.views.calendar import calendar_view, notices_view, schedule_table

app = typer.Typer(cls=ClassAwareTyperGroup, no_args_is_help=True)

console = Console()

type BoardAction = Callable[[SchedulerBoard], Awaitable[Optional[str]]]


async def open_board(config: Configuration, notices: list[Notice]) -> SchedulerBoard:
    """Load the class schedule and build a board session around it."""
    class_id = config["class_id"]
    if not class_id:
        raise ScheduleError(
            "No class selected. Run `schedboard config set --class-id <id>` first."
        )

    service = HttpScheduleService(config["api_base_url"], class_id, config["token"])
    result = await service.list()
    if not result["ok"]:
        raise RemoteError(
            result.get("message") or "Could not load schedule.",
            result.get("field_errors"),
        )

    tz = config["timezone"]
    queue = MutationQueue(
        service, with_client_ids(result.get("data") or []), notify=notices.append
    )
    track = Track.for_today(
        tz,
        visible_days=config["visible_days"],
        buffer=config["buffer_days"],
        max_goto_steps=config["max_goto_steps"],
    )
    tracker = InteractionTracker(
        tz,
        column_width_px=config["column_width_px"],
        viewport=(0, config["column_width_px"] * config["visible_days"]),
        slide_cooldown_ms=config["slide_cooldown_ms"],
        edge_hysteresis_px=config["edge_hysteresis_px"],
        lock_settle_ms=config["lock_settle_ms"],
    )
    board = SchedulerBoard(queue, track, tracker, notify=notices.append)
    tracker.on_page = board.request_page
    return board


def _run_on_board(action: BoardAction, start: Optional[str] = None) -> None:
    """
    Open a board, run `action`, wait for the queue to settle and render.

    The action may return a day key; the window is moved there before
    rendering unless an explicit start day was given.
    """
    config = CONFIGURATION_REPO.get_config()
    notices: list[Notice] = []

    async def session() -> SchedulerBoard:
        board = await open_board(config, notices)
        focus = await action(board)
        await board.queue.join()
        target = start or focus
        if target is not None:
            await board.go_to_date(target)
        return board

    try:
        board = asyncio.run(session())
    except ScheduleError as e:
        notices_view(notices, console)
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)

    notices_view(notices, console)
    calendar_view(config["class_id"], board.layout(), board.tz, board.today(), console=console)
    schedule_table(board.queue.items, board.tz, console=console)

    if any(notice["variant"] == "error" for notice in notices):
        raise typer.Exit(code=1)


def _require_item(board: SchedulerBoard, id: str) -> ScheduleItem:
    item = board.find(id)
    if item is None:
        raise ScheduleError(f"No scheduled quiz matches id {id!r}")
    return item


def _tz() -> str:
    return CONFIGURATION_REPO.get_config()["timezone"]


@app.command("view, v")
def view(
    start: Annotated[
        Optional[str],
        typer.Option("--start", "-s", help="First visible day (defaults to today)"),
    ] = None,
) -> None:
    """Show the class schedule."""
    start_day = parse_day(start, _tz())

    async def action(board: SchedulerBoard) -> Optional[str]:
        return None

    _run_on_board(action, start_day)


@app.command("add, a", no_args_is_help=True)
def add(
    quiz_id: str,
    day: Annotated[
        str,
        typer.Option("--day", "-d", help="Day to schedule on (YYYY-MM-DD, today, +N, ...)"),
    ],
    name: Annotated[Optional[str], typer.Option("--name", "-n")] = None,
    subject: Annotated[Optional[str], typer.Option("--subject", "-su")] = None,
    color: Annotated[
        Optional[str], typer.Option("--color", "-col", help="Subject color as #rrggbb")
    ] = None,
    root_id: Annotated[Optional[str], typer.Option("--root-id")] = None,
    version: Annotated[Optional[int], typer.Option("--version")] = None,
) -> None:
    """Schedule a quiz as a one-day item."""
    target = parse_day(day, _tz())
    subject_color = parse_color(color)

    async def action(board: SchedulerBoard) -> Optional[str]:
        assert target is not None
        quiz = quiz_summary(quiz_id, name, subject, subject_color)
        if root_id is not None:
            quiz["root_id"] = root_id
        if version is not None:
            quiz["version"] = version
        board.drop_quiz(quiz, target)
        return target

    _run_on_board(action)


@app.command("move, m", no_args_is_help=True)
def move(
    id: str,
    to: Annotated[str, typer.Option("--to", "-t", help="New first day")],
) -> None:
    """Move a scheduled quiz, keeping its length."""
    target = parse_day(to, _tz())

    async def action(board: SchedulerBoard) -> Optional[str]:
        assert target is not None
        item = _require_item(board, id)
        if not board.move_item(item["client_id"], target):
            console.print("[yellow]Nothing to change[/yellow]")
        return target

    _run_on_board(action)


@app.command("resize, rs", no_args_is_help=True)
def resize(
    id: str,
    to: Annotated[str, typer.Option("--to", "-t", help="New first or last day")],
    edge: Annotated[
        ResizeEdge,
        typer.Option("--edge", "-e", help="Which end of the quiz to move"),
    ] = ResizeEdge.RIGHT,
) -> None:
    """Change the first (left edge) or last (right edge) day of a quiz."""
    target = parse_day(to, _tz())

    async def action(board: SchedulerBoard) -> Optional[str]:
        assert target is not None
        item = _require_item(board, id)
        if not board.resize_item(item["client_id"], edge, target):
            console.print("[yellow]Nothing to change[/yellow]")
        return day_key(item["start_date"], board.tz)

    _run_on_board(action)


@app.command("edit, e", no_args_is_help=True)
def edit(
    id: str,
    attempts: Annotated[
        Optional[int], typer.Option("--attempts", "-a", min=1, help="Attempts allowed")
    ] = None,
    show_answers: Annotated[
        Optional[bool],
        typer.Option(
            "--show-answers/--hide-answers",
            help="Show answers after an attempt",
        ),
    ] = None,
    contribution: Annotated[
        Optional[float],
        typer.Option("--contribution", "-c", min=0, help="Grade weight"),
    ] = None,
) -> None:
    """Change attempt and grading settings of a scheduled quiz."""

    async def action(board: SchedulerBoard) -> Optional[str]:
        item = _require_item(board, id)
        if not board.edit_settings(
            item["client_id"],
            attempts_allowed=attempts,
            show_answers_after_attempt=show_answers,
            contribution=contribution,
        ):
            console.print("[yellow]Nothing to change[/yellow]")
        return day_key(item["start_date"], board.tz)

    _run_on_board(action)


@app.command("remove, rm", no_args_is_help=True)
def remove(id: str) -> None:
    """Remove a quiz from the schedule."""

    async def action(board: SchedulerBoard) -> Optional[str]:
        item = _require_item(board, id)
        board.drop_outside(item["client_id"])
        return day_key(item["start_date"], board.tz)

    _run_on_board(action)
