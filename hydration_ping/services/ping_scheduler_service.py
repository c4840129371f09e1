"""Ping time generation and reminder window reconciliation."""

from __future__ import annotations

import datetime
import json
from dataclasses import dataclass
from typing import Any, Iterable, List

from dateutil import tz

from hydration_ping.core.config import get_default_timezone
from hydration_ping.models import ReminderEvent
from hydration_ping.services.time_service import (
    coerce_date,
    event_sort_key,
    format_label_time,
    format_minutes_to_time,
    local_datetime,
    local_minutes,
    local_now,
    parse_time_to_minutes,
    round_half_up,
    weekday_index,
    weekday_name,
)

PING_ROUNDING_MINUTES = 5
MAX_WINDOW_DAYS = 30
NEXT_PING_LOOKAHEAD_DAYS = 7


@dataclass(frozen=True)
class QuietPeriod:
    start: str
    end: str


@dataclass(frozen=True)
class ScheduleConfig:
    """Plain view of a schedule, decoupled from the database row."""

    id: str = ""
    user_id: str | None = None
    name: str = ""
    days_of_week: tuple[int, ...] = ()
    start_time: str = "00:00"
    end_time: str = "00:00"
    num_pings: int = 0
    quiet_periods: tuple[QuietPeriod, ...] = ()
    is_active: bool = True


@dataclass(frozen=True)
class NextPing:
    at: datetime.datetime
    date: str
    time: str
    label: str


def _days_from_value(value: Any) -> tuple[int, ...]:
    if isinstance(value, str):
        tokens: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        tokens = value
    else:
        return ()

    days = set()
    for token in tokens:
        if isinstance(token, bool):
            continue
        if isinstance(token, int):
            days.add(token)
        elif isinstance(token, str) and token.strip().isdigit():
            days.add(int(token.strip()))
    return tuple(sorted(day for day in days if 0 <= day <= 6))


def _quiet_periods_from_value(value: Any) -> tuple[QuietPeriod, ...]:
    if isinstance(value, str):
        try:
            value = json.loads(value or "[]")
        except ValueError:
            return ()
    if not isinstance(value, (list, tuple)):
        return ()

    periods = []
    for item in value:
        if isinstance(item, QuietPeriod):
            periods.append(item)
        elif isinstance(item, dict):
            periods.append(QuietPeriod(start=str(item.get("start") or ""), end=str(item.get("end") or "")))
    return tuple(periods)


def as_schedule_config(schedule: Any) -> ScheduleConfig:
    """Accept a ``ScheduleConfig`` or any schedule-shaped object (e.g. the ``Schedule`` row)."""
    if isinstance(schedule, ScheduleConfig):
        return schedule
    num_pings = getattr(schedule, "num_pings", 0)
    return ScheduleConfig(
        id=getattr(schedule, "id", "") or "",
        user_id=getattr(schedule, "user_id", None),
        name=getattr(schedule, "name", "") or "",
        days_of_week=_days_from_value(getattr(schedule, "days_of_week", ())),
        start_time=getattr(schedule, "start_time", "") or "",
        end_time=getattr(schedule, "end_time", "") or "",
        num_pings=num_pings if isinstance(num_pings, int) and not isinstance(num_pings, bool) else 0,
        quiet_periods=_quiet_periods_from_value(getattr(schedule, "quiet_periods", ())),
        is_active=bool(getattr(schedule, "is_active", True)),
    )


def compute_ping_times(schedule: Any) -> List[str]:
    """Ping times for one active day, ascending, as ``"HH:MM"`` strings.

    Pings are spread over ``numPings + 1`` equal intervals so none lands on a
    window endpoint, rounded to the nearest 5 minutes and clamped into the
    window. Candidates inside a quiet period (``start <= t < end``) are dropped
    without redistribution. The window is wall-clock based, so the same times
    apply to every active day.
    """
    config = as_schedule_config(schedule)
    start = parse_time_to_minutes(config.start_time)
    end = parse_time_to_minutes(config.end_time)
    if end <= start or config.num_pings < 1:
        return []

    interval = (end - start) / (config.num_pings + 1)
    quiet_ranges = [
        (parse_time_to_minutes(period.start), parse_time_to_minutes(period.end))
        for period in config.quiet_periods
    ]

    minutes_set = set()
    for index in range(1, config.num_pings + 1):
        candidate = start + interval * index
        rounded = round_half_up(candidate / PING_ROUNDING_MINUTES) * PING_ROUNDING_MINUTES
        minutes = min(max(rounded, start), end)
        if any(quiet_start <= minutes < quiet_end for quiet_start, quiet_end in quiet_ranges):
            continue
        minutes_set.add(minutes)

    return [format_minutes_to_time(minutes) for minutes in sorted(minutes_set)]


def generate_events_for_window(
    schedule: Any,
    timezone: str | None,
    num_days: int,
    now: datetime.datetime,
) -> List[ReminderEvent]:
    """Materialize ``scheduled`` reminders for ``num_days`` days starting today.

    Days whose weekday is not in the schedule are skipped entirely, as is the
    whole window for an inactive schedule. The returned events are not
    attached to any session.
    """
    config = as_schedule_config(schedule)
    if not config.is_active:
        return []

    ping_times = compute_ping_times(config)
    if not ping_times:
        return []

    timezone_name = (timezone or "").strip() or get_default_timezone()
    safe_days = max(1, min(int(num_days), MAX_WINDOW_DAYS))
    current = local_now(timezone_name, now)
    today = current.date()
    created_at = current.astimezone(tz.UTC)

    events = []
    for offset in range(safe_days):
        day = today + datetime.timedelta(days=offset)
        if weekday_index(day) not in config.days_of_week:
            continue
        for ping_time in ping_times:
            events.append(
                ReminderEvent(
                    user_id=config.user_id,
                    schedule_id=config.id,
                    schedule_name=config.name,
                    timezone=timezone_name,
                    date=day,
                    time=ping_time,
                    scheduled_at=local_datetime(day, ping_time, timezone_name).astimezone(tz.UTC),
                    status="scheduled",
                    created_at=created_at,
                )
            )

    events.sort(key=event_sort_key)
    return events


def reconcile_events(
    schedule: Any,
    timezone: str | None,
    existing_events: Iterable[ReminderEvent],
    now: datetime.datetime,
    num_days: int,
) -> List[ReminderEvent]:
    """Regenerate the forward window while keeping recorded outcomes.

    Returns past history (dated before today, untouched, same objects) followed
    by the regenerated window. A regenerated event whose ``(date, time)`` key
    matches an existing event inherits that event's id, status and timestamps, plus its scheduled
    instant when the timezone is unchanged. Existing upcoming events without a
    match are not returned.
    """
    existing = list(existing_events)
    today = local_now(timezone or get_default_timezone(), now).date()

    existing_by_key = {}
    for event in existing:
        event_date = coerce_date(event.date)
        if event_date is None:
            continue
        existing_by_key[(event_date, format_minutes_to_time(parse_time_to_minutes(event.time)))] = event

    merged = []
    for event in generate_events_for_window(schedule, timezone, num_days, now):
        match = existing_by_key.get((event.date, event.time))
        if match is not None:
            event.id = match.id
            event.status = match.status
            event.created_at = match.created_at or event.created_at
            event.updated_at = match.updated_at
            if match.timezone == event.timezone:
                event.scheduled_at = match.scheduled_at or event.scheduled_at
        merged.append(event)

    past = []
    for event in existing:
        event_date = coerce_date(event.date)
        if event_date is not None and event_date < today:
            past.append(event)

    return past + merged


def find_next_ping(schedule: Any, timezone: str | None, now: datetime.datetime) -> NextPing | None:
    """Next ping strictly after the current minute, looking up to a week ahead."""
    config = as_schedule_config(schedule)
    if not config.is_active:
        return None

    timezone_name = (timezone or "").strip() or get_default_timezone()
    today = local_now(timezone_name, now).date()
    current_minutes = local_minutes(timezone_name, now)
    ping_times = compute_ping_times(config)
    if not ping_times:
        return None

    if weekday_index(today) in config.days_of_week:
        for ping_time in ping_times:
            if parse_time_to_minutes(ping_time) > current_minutes:
                at = local_datetime(today, ping_time, timezone_name)
                return NextPing(at=at, date=today.isoformat(), time=ping_time, label=f"Today at {format_label_time(at)}")

    for offset in range(1, NEXT_PING_LOOKAHEAD_DAYS + 1):
        day = today + datetime.timedelta(days=offset)
        day_index = weekday_index(day)
        if day_index not in config.days_of_week:
            continue
        at = local_datetime(day, ping_times[0], timezone_name)
        prefix = "Tomorrow" if offset == 1 else weekday_name(day_index)
        return NextPing(at=at, date=day.isoformat(), time=ping_times[0], label=f"{prefix} at {format_label_time(at)}")

    return None


__all__ = [
    "QuietPeriod",
    "ScheduleConfig",
    "NextPing",
    "as_schedule_config",
    "compute_ping_times",
    "generate_events_for_window",
    "reconcile_events",
    "find_next_ping",
]
