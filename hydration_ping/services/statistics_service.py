"""Daily completion statistics and streak counting."""

from __future__ import annotations

import datetime
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List

from hydration_ping.core.config import DEFAULT_STREAK_THRESHOLD
from hydration_ping.services.time_service import (
    date_key,
    days_between_date_keys,
    event_sort_key,
    local_now,
    parse_time_to_minutes,
)


@dataclass
class DailyStat:
    date: str
    total: int = 0
    drank: int = 0
    skipped: int = 0
    completion: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StreakResult:
    current_streak: int = 0
    best_streak: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def build_daily_stats(events: Iterable[Any]) -> Dict[str, DailyStat]:
    """Group reminder outcomes per calendar day.

    Events without a usable date do not contribute to any day.
    ``completion`` is the drank share as a whole percentage, rounded half up.
    """
    stats: Dict[str, DailyStat] = {}
    for event in events:
        key = date_key(getattr(event, "date", None))
        if key is None:
            continue
        stat = stats.setdefault(key, DailyStat(date=key))
        stat.total += 1
        status = getattr(event, "status", None)
        if status == "drank":
            stat.drank += 1
        elif status == "skipped":
            stat.skipped += 1

    for stat in stats.values():
        # 日本語: 0.5 切り上げで整数パーセントに丸める / English: Whole percent, halves round up
        stat.completion = (stat.drank * 200 + stat.total) // (stat.total * 2) if stat.total else 0
    return stats


def is_successful_day(stat: DailyStat, threshold: float = DEFAULT_STREAK_THRESHOLD) -> bool:
    return stat.total > 0 and stat.drank / stat.total >= threshold


def compute_streaks(
    events: Iterable[Any],
    timezone: str | None,
    threshold: float = DEFAULT_STREAK_THRESHOLD,
    *,
    now: datetime.datetime,
) -> StreakResult:
    """Current and best runs of consecutive successful days.

    ``best_streak`` is the longest run of successful dates one calendar day
    apart. ``current_streak`` walks back from today (in ``timezone``) and stops
    at the first day that is not successful; a day without reminders counts as
    unsuccessful.
    """
    stats = build_daily_stats(events)
    success_dates = sorted(key for key, stat in stats.items() if is_successful_day(stat, threshold))

    best_streak = 0
    streak = 0
    previous = None
    for key in success_dates:
        if previous is not None and days_between_date_keys(previous, key) == 1:
            streak += 1
        else:
            streak = 1
        previous = key
        best_streak = max(best_streak, streak)

    current_streak = 0
    cursor = local_now(timezone, now).date()
    while True:
        stat = stats.get(cursor.isoformat())
        if stat is None or not is_successful_day(stat, threshold):
            break
        current_streak += 1
        cursor -= datetime.timedelta(days=1)

    return StreakResult(current_streak=current_streak, best_streak=best_streak)


def sort_events_chronologically(events: Iterable[Any]) -> List[Any]:
    return sorted(events, key=event_sort_key)


def next_scheduled_event(events: Iterable[Any], timezone: str | None, now: datetime.datetime) -> Any | None:
    """First still-``scheduled`` event at or after the current local minute."""
    current = local_now(timezone, now)
    today_key = current.date().isoformat()
    current_minutes = current.hour * 60 + current.minute

    for event in sort_events_chronologically(events):
        if getattr(event, "status", None) != "scheduled":
            continue
        key = date_key(getattr(event, "date", None))
        if key is None or key < today_key:
            continue
        if key == today_key and parse_time_to_minutes(getattr(event, "time", "")) < current_minutes:
            continue
        return event
    return None


__all__ = [
    "DailyStat",
    "StreakResult",
    "build_daily_stats",
    "is_successful_day",
    "compute_streaks",
    "sort_events_chronologically",
    "next_scheduled_event",
]
