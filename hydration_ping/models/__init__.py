"""SQLModel exports for Hydration Habit Ping."""

from .reminder_models import REMINDER_STATUSES, TERMINAL_STATUSES, ReminderEvent, Schedule
from .user_models import UserProfile

__all__ = [
    "UserProfile",
    "Schedule",
    "ReminderEvent",
    "REMINDER_STATUSES",
    "TERMINAL_STATUSES",
]
