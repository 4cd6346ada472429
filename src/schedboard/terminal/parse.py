# SPDX-License-Identifier: MIT

import re
from typing import Optional

import typer

from schedboard.color import normalize_hex_color
from schedboard.time import add_days, is_day_key, today_key


def parse_day(day_param: Optional[str], tz: str) -> Optional[str]:
    """
    Turn a day argument into a day key in `tz`.

    Accepts YYYY-MM-DD, today/t, tomorrow/tm, yesterday/y, or a signed
    offset in days from today (e.g. "3", "-1", "+2").
    """
    if day_param is None:
        return None

    day = day_param.strip().lower()

    if re.match(r"^\d{4}-\d{2}-\d{2}$", day):
        if not is_day_key(day):
            raise typer.BadParameter(f"Not a calendar day: {day_param}")
        return day

    if re.match(r"^[+-]?\d+$", day):
        return add_days(today_key(tz), int(day))

    if day in ("today", "t"):
        return today_key(tz)
    if day in ("tomorrow", "tm"):
        return add_days(today_key(tz), 1)
    if day in ("yesterday", "y"):
        return add_days(today_key(tz), -1)

    raise typer.BadParameter(
        f"Invalid day: {day_param}. Use YYYY-MM-DD, today, tomorrow, yesterday or a day offset"
    )


def parse_color(color_param: Optional[str]) -> Optional[str]:
    if color_param is None:
        return None
    try:
        return normalize_hex_color(color_param)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
