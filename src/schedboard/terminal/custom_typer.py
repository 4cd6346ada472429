# SPDX-License-Identifier: MIT

import logging
import re
from typing import Any, Optional

import click
import typer
import typer.core
from rich.console import Console
from rich.padding import Padding

from schedboard.repository.configuration import CONFIGURATION_REPO

logger = logging.getLogger(__name__)

console = Console()


def _show_active_class(ctx: click.Context) -> None:
    """Show the selected class once per invocation chain"""
    if getattr(ctx, "_class_shown", False):
        return

    current: Optional[click.Context] = ctx
    while current is not None:
        current._class_shown = True  # type: ignore[attr-defined]
        current = current.parent

    try:
        class_id = CONFIGURATION_REPO.get_config()["class_id"]
    except (OSError, ValueError) as e:
        # The config file is created on first run
        logger.debug("no configuration for help header: %s", e)
        return

    console.print()
    console.print(
        Padding(
            f"[bold plum1]Active class: {class_id or 'none'}[/bold plum1]",
            (0, 0, 0, 1),
        )
    )


class ClassAwareCommand(typer.core.TyperCommand):
    """Command class that displays the active class in help text"""

    def format_help(
        self, ctx: click.Context, formatter: click.formatting.HelpFormatter
    ) -> None:
        _show_active_class(ctx)
        super().format_help(ctx, formatter)


class AliasedTyperGroup(typer.core.TyperGroup):
    """Custom TyperGroup that supports comma-separated command aliases"""

    _CMD_SPLIT_P = re.compile(r" ?, ?")

    def get_command(self, ctx: click.Context, cmd_name: str) -> Optional[click.Command]:
        cmd_name = self._group_cmd_name(cmd_name)
        return super().get_command(ctx, cmd_name)

    def _group_cmd_name(self, default_name: str) -> str:
        for cmd in self.commands.values():
            name = cmd.name
            if name and default_name in self._CMD_SPLIT_P.split(name):
                return name
        return default_name

    def add_command(self, cmd: click.Command, name: Optional[str] = None) -> None:
        if name is None:
            name = cmd.name

        # Aliases resolve to an already registered command
        existing_name = self._group_cmd_name(name or "")
        if existing_name in self.commands and existing_name != name:
            return

        super().add_command(cmd, name)


class ClassAwareTyperGroup(AliasedTyperGroup):
    """Aliased group whose help output starts with the active class"""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.command_class = ClassAwareCommand

    def list_commands(self, ctx: click.Context) -> list[str]:
        """Return commands in a fixed order instead of insertion order"""
        desired_order = [
            "config, c",
            "schedule, s",
        ]

        result = [name for name in desired_order if name in self.commands]
        for cmd_name in self.commands.keys():
            if cmd_name not in result:
                result.append(cmd_name)
        return result

    def format_help(
        self, ctx: click.Context, formatter: click.formatting.HelpFormatter
    ) -> None:
        _show_active_class(ctx)
        super().format_help(ctx, formatter)
