"""Due-reminder lookup and notification dispatch."""

from __future__ import annotations

import datetime
import logging
from typing import Callable, List

from sqlmodel import Session, select

from hydration_ping.models import ReminderEvent, UserProfile
from hydration_ping.services.statistics_service import sort_events_chronologically
from hydration_ping.services.tier_service import capabilities_for_tier
from hydration_ping.services.time_service import local_now, parse_time_to_minutes

logger = logging.getLogger(__name__)

REMINDER_MESSAGE = "Hydration Check! It's {time}. Time to drink!"

Notifier = Callable[[UserProfile, ReminderEvent], None]


def build_reminder_message(event: ReminderEvent) -> str:
    return REMINDER_MESSAGE.format(time=event.time)


class LoggingNotifier:
    """Notifier that records the message in the log instead of sending it."""

    def __call__(self, user: UserProfile, event: ReminderEvent) -> None:
        logger.info("(Mock) SMS to %s: %s", user.phone, build_reminder_message(event))


def find_due_reminders(db: Session, now: datetime.datetime) -> List[tuple[UserProfile, ReminderEvent]]:
    """Unanswered reminders whose local ``(date, time)`` is the current minute."""
    due = []
    for user in db.exec(select(UserProfile)).all():
        # 日本語: SMS 権限と電話番号がある利用者のみ対象 / English: Only users with SMS capability and a phone number
        if not user.phone or not capabilities_for_tier(user.tier).sms_enabled:
            continue

        current = local_now(user.timezone, now)
        current_minutes = current.hour * 60 + current.minute
        events = db.exec(
            select(ReminderEvent).where(
                ReminderEvent.user_id == user.id,
                ReminderEvent.date == current.date(),
                ReminderEvent.status == "scheduled",
            )
        ).all()
        for event in sort_events_chronologically(events):
            if parse_time_to_minutes(event.time) == current_minutes:
                due.append((user, event))
    return due


def dispatch_due_reminders(db: Session, now: datetime.datetime, notifier: Notifier | None = None) -> int:
    """Send every due reminder; a failing delivery does not stop the rest."""
    notifier = notifier or LoggingNotifier()
    delivered = 0
    for user, event in find_due_reminders(db, now):
        try:
            notifier(user, event)
        except Exception:
            logger.exception("Failed to notify user %s for reminder %s", user.id, event.id)
            continue
        delivered += 1
        logger.info("Sent reminder %s (%s %s) to user %s", event.id, event.date, event.time, user.id)
    return delivered


__all__ = [
    "REMINDER_MESSAGE",
    "Notifier",
    "LoggingNotifier",
    "build_reminder_message",
    "find_due_reminders",
    "dispatch_due_reminders",
]
