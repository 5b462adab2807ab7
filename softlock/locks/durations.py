# softlock/locks/durations.py
from __future__ import annotations
import re
from datetime import datetime, timedelta, timezone
from typing import Dict, Union

import pandas as pd

from .exceptions import InvalidDuration

DurationInput = Union[str, int, float, timedelta, datetime]

_NUMBER = re.compile(r"[+-]?\d+(\.\d+)?")
# calendar units pd.Timedelta cannot express
_CALENDAR = re.compile(r"([+-]?\d+)\s*(months?|years?)\b", re.IGNORECASE)
_DAY_ANCHORS = {"today": 0, "midnight": 0, "tomorrow": 1, "yesterday": -1}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(ts: datetime) -> datetime:
    """Naive timestamps (sqlite drops tzinfo) are taken as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def is_empty(value: object) -> bool:
    """Empty/zero/unset values fall through to the next precedence level.

    Negative values are NOT empty.
    """
    if value is None:
        return True
    if isinstance(value, str):
        text = value.strip()
        if _NUMBER.fullmatch(text):
            return float(text) == 0
        return not text
    if isinstance(value, (int, float, timedelta)):
        return not value
    return False


def parse_until(value: DurationInput, now: datetime) -> datetime:
    """Turn a duration description or an absolute timestamp into ``locked_until``.

    - ``timedelta`` / bare numbers (seconds) / "3 minutes", "-1 minute",
      "+2 hours", "1 month", "1 year 2 days" are relative to ``now``
    - ``datetime``, "tomorrow" or a parsable date string is absolute
    """
    try:
        return _parse_until(value, now)
    except (OverflowError, ValueError) as exc:
        # out of datetime range
        raise InvalidDuration(value, str(exc)) from exc


def _parse_until(value: DurationInput, now: datetime) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, timedelta):
        return now + value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return now + timedelta(seconds=value)
    if not isinstance(value, str):
        raise InvalidDuration(value, f"unsupported type {type(value).__name__}")

    text = value.strip()
    if not text:
        raise InvalidDuration(value, "empty string")
    if _NUMBER.fullmatch(text):
        return now + timedelta(seconds=float(text))

    keyword = text.lower()
    if keyword == "now":
        return now
    if keyword in _DAY_ANCHORS:
        midnight = pd.Timestamp(now).normalize() + pd.Timedelta(days=_DAY_ANCHORS[keyword])
        return as_utc(midnight.to_pydatetime())

    relative = text[1:].strip() if text.startswith("+") else text

    calendar: Dict[str, int] = {}

    def _take(match: re.Match) -> str:
        unit = match.group(2).lower().rstrip("s") + "s"
        calendar[unit] = calendar.get(unit, 0) + int(match.group(1))
        return ""

    rest = _CALENDAR.sub(_take, relative).strip()
    if calendar:
        until = pd.Timestamp(now) + pd.DateOffset(**calendar)
        if rest:
            until = until + _timedelta(value, rest)
        return as_utc(until.to_pydatetime())

    # relative: pandas Timedelta understands "5 minutes", "1 day 2 hours", ...
    try:
        delta = pd.Timedelta(relative)
    except (ValueError, TypeError, OverflowError):
        delta = None
    if delta is not None and not pd.isna(delta):
        return now + delta.to_pytimedelta()

    # absolute: "2026-10-17 12:00", ISO strings, ...
    try:
        ts = pd.Timestamp(text)
    except (ValueError, TypeError, OverflowError) as exc:
        raise InvalidDuration(value, str(exc)) from exc
    if pd.isna(ts):
        raise InvalidDuration(value, "not a time")
    return as_utc(ts.to_pydatetime())


def _timedelta(value: DurationInput, text: str) -> pd.Timedelta:
    try:
        delta = pd.Timedelta(text)
    except (ValueError, TypeError) as exc:
        raise InvalidDuration(value, str(exc)) from exc
    if pd.isna(delta):
        raise InvalidDuration(value, "not a time")
    return delta
