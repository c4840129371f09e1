"""Wall-clock time, calendar date and timezone helpers.

Times travel as 24-hour ``"HH:MM"`` strings and dates as ``"YYYY-MM-DD"``
strings between the scheduler, the statistics engine and the store. Nothing
here reads the system clock: callers pass the current instant explicitly.
"""

from __future__ import annotations

import datetime
import logging
import math
import re
from typing import Any

from dateutil import tz

from hydration_ping.core.config import WEEKDAY_NAMES, get_default_timezone

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def round_half_up(value: float) -> int:
    # 日本語: 0.5 は常に切り上げ (Python の偶数丸めは使わない) / English: .5 always rounds up, never to even
    return int(math.floor(value + 0.5))


def _component_to_int(raw: str) -> int:
    text = raw.strip()
    if not text:
        return 0
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        return 0


def parse_time_to_minutes(value: Any) -> int:
    """Convert ``"HH:MM"`` into minutes since midnight.

    Unparsable components become ``0``; hour is clamped to ``[0, 23]`` and
    minute to ``[0, 59]``. Never raises.
    """
    if not isinstance(value, str):
        return 0
    parts = value.split(":")
    hour = _component_to_int(parts[0])
    minute = _component_to_int(parts[1]) if len(parts) > 1 else 0
    hour = min(max(hour, 0), 23)
    minute = min(max(minute, 0), 59)
    return hour * 60 + minute


def format_minutes_to_time(minutes: int) -> str:
    normalized = int(minutes) % MINUTES_PER_DAY
    return f"{normalized // 60:02d}:{normalized % 60:02d}"


def weekday_index(date_value: datetime.date) -> int:
    # 日本語: 0=日曜 ... 6=土曜 / English: 0=Sunday ... 6=Saturday
    return date_value.isoweekday() % 7


def weekday_name(index: int) -> str:
    if 0 <= index < len(WEEKDAY_NAMES):
        return WEEKDAY_NAMES[index]
    return "Next"


def coerce_date(value: Any) -> datetime.date | None:
    """Return a ``date`` for date objects or ``"YYYY-MM-DD"`` strings, else ``None``."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.datetime.strptime(value.strip(), "%Y-%m-%d").date()
        except ValueError:
            return None
    return None


def date_key(value: Any) -> str | None:
    date_value = coerce_date(value)
    return date_value.isoformat() if date_value else None


def add_days_to_date_key(key: str, delta: int) -> str:
    base = coerce_date(key)
    if base is None:
        raise ValueError(f"Invalid date key: {key!r}")
    return (base + datetime.timedelta(days=delta)).isoformat()


def days_between_date_keys(start: str, end: str) -> int:
    start_date = coerce_date(start)
    end_date = coerce_date(end)
    if start_date is None or end_date is None:
        raise ValueError(f"Invalid date keys: {start!r}, {end!r}")
    return (end_date - start_date).days


_TIMEZONE_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_+\-]*(/[A-Za-z0-9_+\-]+)*$")
MAX_TIMEZONE_LENGTH = 64


def _lookup_zone(name: Any) -> datetime.tzinfo | None:
    """IANA-style names only; ``gettz`` would otherwise read arbitrary file paths."""
    if not isinstance(name, str):
        return None
    candidate = name.strip()
    # 日本語: 空文字の gettz はホストのローカル時刻になるため除外 / English: gettz("") means host local time, so skip it
    if not candidate or len(candidate) > MAX_TIMEZONE_LENGTH:
        return None
    if ".." in candidate or not _TIMEZONE_NAME_PATTERN.match(candidate):
        return None
    try:
        return tz.gettz(candidate)
    except ValueError:
        return None


def resolve_timezone(name: str | None) -> datetime.tzinfo:
    """Look up an IANA timezone, falling back to the configured default."""
    candidate = (name or "").strip() if isinstance(name, str) else ""
    zone = _lookup_zone(candidate)
    if zone is not None:
        return zone

    fallback_name = get_default_timezone()
    if candidate:
        logger.warning("Unknown timezone %r, falling back to %s", candidate, fallback_name)
    return _lookup_zone(fallback_name) or tz.UTC


def is_known_timezone(name: Any) -> bool:
    return _lookup_zone(name) is not None


def local_now(timezone: str | None, now: datetime.datetime) -> datetime.datetime:
    """View the injected instant as wall-clock time in ``timezone``."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz.UTC)
    return now.astimezone(resolve_timezone(timezone))


def local_today(timezone: str | None, now: datetime.datetime) -> datetime.date:
    return local_now(timezone, now).date()


def local_minutes(timezone: str | None, now: datetime.datetime) -> int:
    current = local_now(timezone, now)
    return current.hour * 60 + current.minute


def local_datetime(date_value: datetime.date, time_value: str, timezone: str | None) -> datetime.datetime:
    """Aware datetime for a wall-clock time on a calendar date.

    Times that do not exist locally (DST gap) are shifted forward.
    """
    minutes = parse_time_to_minutes(time_value)
    naive = datetime.datetime.combine(date_value, datetime.time(minutes // 60, minutes % 60))
    aware = naive.replace(tzinfo=resolve_timezone(timezone))
    return tz.resolve_imaginary(aware)


def event_sort_key(event: Any) -> tuple[str, int]:
    """Chronological key: date ascending, then time-of-day in minutes."""
    return (date_key(getattr(event, "date", None)) or "", parse_time_to_minutes(getattr(event, "time", "")))


def format_label_time(value: datetime.datetime) -> str:
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


__all__ = [
    "MINUTES_PER_DAY",
    "round_half_up",
    "parse_time_to_minutes",
    "format_minutes_to_time",
    "weekday_index",
    "weekday_name",
    "coerce_date",
    "date_key",
    "add_days_to_date_key",
    "days_between_date_keys",
    "resolve_timezone",
    "is_known_timezone",
    "local_now",
    "local_today",
    "local_minutes",
    "local_datetime",
    "event_sort_key",
    "format_label_time",
]
