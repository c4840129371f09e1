"""Service-layer exports."""

from .notification_service import LoggingNotifier, dispatch_due_reminders, find_due_reminders
from .ping_scheduler_service import (
    ScheduleConfig,
    compute_ping_times,
    find_next_ping,
    generate_events_for_window,
    reconcile_events,
)
from .statistics_service import (
    DailyStat,
    StreakResult,
    build_daily_stats,
    compute_streaks,
    is_successful_day,
    next_scheduled_event,
    sort_events_chronologically,
)
from .tier_service import Capabilities, TierLimitError, capabilities_for_tier

__all__ = [
    "ScheduleConfig",
    "compute_ping_times",
    "generate_events_for_window",
    "reconcile_events",
    "find_next_ping",
    "DailyStat",
    "StreakResult",
    "build_daily_stats",
    "is_successful_day",
    "compute_streaks",
    "sort_events_chronologically",
    "next_scheduled_event",
    "Capabilities",
    "TierLimitError",
    "capabilities_for_tier",
    "LoggingNotifier",
    "find_due_reminders",
    "dispatch_due_reminders",
]
