# SPDX-License-Identifier: MIT

import datetime
import re
from typing import Optional, cast

import pendulum
from pendulum.tz.timezone import Timezone

from schedboard.exceptions import InvalidTimezoneError

DAY_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def now_utc() -> pendulum.DateTime:
    return pendulum.now("UTC")


def resolve_timezone(tz: str) -> Timezone:
    """Resolve an IANA identifier, failing fast on anything unknown."""
    try:
        return cast(Timezone, pendulum.timezone(tz))
    except (ValueError, KeyError) as e:
        raise InvalidTimezoneError(tz) from e


def is_day_key(value: str) -> bool:
    match = DAY_KEY_PATTERN.match(value)
    if match is None:
        return False
    try:
        datetime.date(*map(int, match.groups()))
    except ValueError:
        return False
    return True


def _parse_day_key(day_key: str) -> pendulum.Date:
    match = DAY_KEY_PATTERN.match(day_key)
    if match is None:
        raise ValueError(f"Invalid day key: {day_key!r}")
    year, month, day = map(int, match.groups())
    return pendulum.date(year, month, day)


def _to_instant(instant: datetime.datetime | str) -> pendulum.DateTime:
    if isinstance(instant, str):
        return datetime_from_str(instant)
    if isinstance(instant, pendulum.DateTime):
        return instant
    return pendulum.instance(instant, tz="UTC")


def day_key(instant: datetime.datetime | str, tz: str) -> str:
    """
    Calendar day of an instant in the given timezone, as 'YYYY-MM-DD'.

    Two instants that fall on the same local day in `tz` always produce the
    same key, whatever the host timezone is.
    """
    return _to_instant(instant).in_tz(resolve_timezone(tz)).format("YYYY-MM-DD")


def add_days(day_key: str, n: int) -> str:
    return _parse_day_key(day_key).add(days=n).isoformat()


def diff_days(a: str, b: str) -> int:
    """Number of calendar days from `b` to `a`."""
    return _parse_day_key(a).toordinal() - _parse_day_key(b).toordinal()


def start_of_day(day_key: str, tz: str) -> pendulum.DateTime:
    """First instant of the day in `tz`, expressed in UTC."""
    day = _parse_day_key(day_key)
    local = pendulum.datetime(day.year, day.month, day.day, tz=resolve_timezone(tz))
    return local.in_tz("UTC")


def end_of_day(day_key: str, tz: str) -> pendulum.DateTime:
    """Last instant of the day in `tz`, expressed in UTC."""
    day = _parse_day_key(day_key)
    local = pendulum.datetime(day.year, day.month, day.day, tz=resolve_timezone(tz))
    return local.end_of("day").in_tz("UTC")


def today_key(tz: str) -> str:
    return day_key(now_utc(), tz)


def format_weekday(day_key: str, tz: str) -> str:
    return _midday(day_key, tz).format("ddd")


def format_month_day(day_key: str, tz: str) -> str:
    return _midday(day_key, tz).format("MMM D")


def _midday(day_key: str, tz: str) -> pendulum.DateTime:
    day = _parse_day_key(day_key)
    return pendulum.datetime(
        day.year, day.month, day.day, 12, tz=resolve_timezone(tz)
    )


def datetime_to_iso_str(datetime: pendulum.DateTime) -> str:
    return datetime.in_tz("UTC").isoformat()


def datetime_to_iso_str_optional(
    datetime: Optional[pendulum.DateTime],
) -> Optional[str]:
    if datetime is None:
        return None
    return datetime_to_iso_str(datetime)


def datetime_from_str(datetime: str) -> pendulum.DateTime:
    return cast(pendulum.DateTime, pendulum.parse(datetime)).in_tz("UTC")


def datetime_from_str_optional(datetime: Optional[str]) -> Optional[pendulum.DateTime]:
    if datetime is None:
        return None
    return datetime_from_str(datetime)
