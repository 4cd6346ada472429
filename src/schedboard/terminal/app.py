# SPDX-License-Identifier: MIT

import logging
from typing import Annotated

import typer

from schedboard.logger import LOGGER_NAME
from schedboard.terminal import configuration, schedule
from schedboard.terminal.custom_typer import ClassAwareTyperGroup
from schedboard.view import state as view_state

app = typer.Typer(
    cls=ClassAwareTyperGroup,
    help="schedboard - Class quiz scheduling in the CLI",
    no_args_is_help=True,
)
app.add_typer(configuration.app, name="config, c")
app.add_typer(schedule.app, name="schedule, s")


@app.callback()
def main_callback(
    no_header: Annotated[
        bool,
        typer.Option(
            "--no-header",
            "-nh",
            help="Suppress header output in views",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-V",
            help="Log remote calls and board activity",
        ),
    ] = False,
) -> None:
    """
    schedboard - Class quiz scheduling in the CLI

    Global options that apply to all commands.
    """
    if no_header:
        view_state.set_show_header(False)
    if verbose:
        logging.getLogger(LOGGER_NAME).setLevel(logging.DEBUG)


def run() -> None:
    app()
