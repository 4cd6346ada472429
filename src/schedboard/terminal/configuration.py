# SPDX-License-Identifier: MIT

from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from schedboard import configuration
from schedboard.exceptions import InvalidTimezoneError
from schedboard.repository.configuration import CONFIGURATION_REPO
from schedboard.terminal.custom_typer import ClassAwareTyperGroup
from schedboard.time import resolve_timezone

app = typer.Typer(cls=ClassAwareTyperGroup, no_args_is_help=True)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _config_table(title: Optional[str] = None) -> Table:
    config = CONFIGURATION_REPO.get_config()

    table = Table(title=title)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")

    table.add_row("api_base_url", config["api_base_url"])
    table.add_row("class_id", config["class_id"] or "None")
    table.add_row("token", "✓ Set" if config["token"] else "✗ Not set")
    table.add_row("timezone", config["timezone"])
    table.add_row("visible_days", str(config["visible_days"]))
    table.add_row("buffer_days", str(config["buffer_days"]))
    table.add_row("max_goto_steps", str(config["max_goto_steps"]))
    table.add_row("slide_cooldown_ms", str(config["slide_cooldown_ms"]))
    table.add_row("edge_hysteresis_px", str(config["edge_hysteresis_px"]))
    table.add_row("lock_settle_ms", str(config["lock_settle_ms"]))
    table.add_row("column_width_px", str(config["column_width_px"]))
    table.add_row(
        "show_header",
        "✓ Enabled" if config["show_header"] else "✗ Disabled",
    )
    table.add_row("log_level", config["log_level"])
    table.add_row("log_path", config.get("log_path") or "None")
    table.add_row("data_path", str(configuration.DATA_PATH))
    table.add_row("config_path", str(configuration.APP_CONFIG_PATH))
    return table


@app.command("view, v")
def view() -> None:
    """Display current configuration settings."""
    console = Console()
    console.print(_config_table())


@app.command("set, s")
def set(
    api_base_url: Annotated[
        Optional[str],
        typer.Option("--api-base-url", help="Base URL of the class service"),
    ] = None,
    class_id: Annotated[
        Optional[str],
        typer.Option("--class-id", help="Class whose schedule is managed"),
    ] = None,
    token: Annotated[
        Optional[str],
        typer.Option("--token", help="Bearer token sent with every request"),
    ] = None,
    remove_token: Annotated[
        bool, typer.Option("--remove-token", help="Forget the stored token")
    ] = False,
    timezone: Annotated[
        Optional[str],
        typer.Option("--timezone", help="IANA timezone of the class"),
    ] = None,
    visible_days: Annotated[
        Optional[int],
        typer.Option("--visible-days", min=1, help="Days shown at once"),
    ] = None,
    buffer_days: Annotated[
        Optional[int],
        typer.Option("--buffer-days", min=0, help="Off-screen days on each side"),
    ] = None,
    max_goto_steps: Annotated[
        Optional[int],
        typer.Option(
            "--max-goto-steps",
            min=0,
            help="Single-day pages before jumping straight to a date",
        ),
    ] = None,
    slide_cooldown_ms: Annotated[
        Optional[int],
        typer.Option("--slide-cooldown-ms", min=0, help="Minimum gap between auto-slides"),
    ] = None,
    edge_hysteresis_px: Annotated[
        Optional[int],
        typer.Option("--edge-hysteresis-px", min=0, help="Margin past the edge before auto-slide"),
    ] = None,
    lock_settle_ms: Annotated[
        Optional[int],
        typer.Option("--lock-settle-ms", min=0, help="How long a resize lane lock outlives the drop"),
    ] = None,
    column_width_px: Annotated[
        Optional[int],
        typer.Option("--column-width-px", min=1, help="Width of one day column"),
    ] = None,
    show_header: Annotated[
        Optional[bool],
        typer.Option("--show-header/--no-show-header", help="Print the header above views"),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL"),
    ] = None,
    log_path: Annotated[
        Optional[str],
        typer.Option("--log-path", help="Also write logs to this file"),
    ] = None,
    remove_log_path: Annotated[
        bool, typer.Option("--remove-log-path", help="Stop writing logs to a file")
    ] = False,
) -> None:
    """
    Update configuration settings.
    """
    if timezone is not None:
        try:
            resolve_timezone(timezone)
        except InvalidTimezoneError as e:
            raise typer.BadParameter(str(e), param_hint="--timezone")
    if log_level is not None and log_level.upper() not in LOG_LEVELS:
        raise typer.BadParameter(
            f"Unknown log level: {log_level}", param_hint="--log-level"
        )

    CONFIGURATION_REPO.update_config(
        api_base_url=api_base_url,
        class_id=class_id,
        token=token,
        timezone=timezone,
        visible_days=visible_days,
        buffer_days=buffer_days,
        max_goto_steps=max_goto_steps,
        slide_cooldown_ms=slide_cooldown_ms,
        edge_hysteresis_px=edge_hysteresis_px,
        lock_settle_ms=lock_settle_ms,
        column_width_px=column_width_px,
        show_header=show_header,
        log_level=log_level,
        log_path=log_path,
        remove_log_path=remove_log_path,
        remove_token=remove_token,
    )

    console = Console()
    console.print("[green]Configuration updated successfully![/green]\n")
    console.print(_config_table(title="Updated Configuration"))
