"""Persistence for users, schedules and reminder events."""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Sequence

from sqlmodel import Session, col, select

from hydration_ping.core.config import get_default_timezone, get_event_window_days, get_streak_threshold
from hydration_ping.models import TERMINAL_STATUSES, ReminderEvent, Schedule, UserProfile
from hydration_ping.services.ping_scheduler_service import reconcile_events
from hydration_ping.services.statistics_service import compute_streaks, sort_events_chronologically
from hydration_ping.services.tier_service import TIERS, ensure_can_add_schedule, ensure_sms_enabled
from hydration_ping.services.time_service import coerce_date, is_known_timezone, local_today

logger = logging.getLogger(__name__)

MAX_PINGS_PER_DAY = 288

# 日本語: 再生成後に既存行へ書き戻す項目 / English: Fields copied back onto persisted rows after regeneration
_REGENERATED_FIELDS = ("user_id", "schedule_id", "schedule_name", "timezone", "scheduled_at")


class PayloadValidationError(ValueError):
    """Request payload violates the data contract."""


class ScheduleValidationError(PayloadValidationError):
    """Schedule payload violates the data contract."""


class ReminderStateError(Exception):
    """Reminder status transition is not allowed."""


def _parse_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ScheduleValidationError("name must be a non-empty string")
    return value.strip()[:100]


def _parse_days_of_week(value: Any) -> str:
    if isinstance(value, str):
        tokens: List[Any] = [token for token in value.split(",") if token.strip()]
    elif isinstance(value, (list, tuple)):
        tokens = list(value)
    else:
        raise ScheduleValidationError("days_of_week must be a list of weekday indices (0=Sunday ... 6=Saturday)")

    days = set()
    for token in tokens:
        if isinstance(token, int) and not isinstance(token, bool):
            day = token
        elif isinstance(token, str) and token.strip().isdigit():
            day = int(token.strip())
        else:
            raise ScheduleValidationError(f"days_of_week entries must be integers, got {token!r}")
        if not 0 <= day <= 6:
            raise ScheduleValidationError(f"days_of_week entries must be between 0 and 6, got {day}")
        days.add(day)
    return ",".join(str(day) for day in sorted(days))


def _time_parser(field_name: str) -> Callable[[Any], str]:
    def _parse(value: Any) -> str:
        # 日本語: 文字列であれば形式不正でも受理し、計算側でクランプする / English: Any string is accepted; the scheduler clamps bad values
        if not isinstance(value, str):
            raise ScheduleValidationError(f"{field_name} must be an HH:MM string")
        return value.strip()[:10]

    return _parse


def _parse_num_pings(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        count = value
    elif isinstance(value, str) and value.strip().isdigit():
        count = int(value.strip())
    else:
        raise ScheduleValidationError("num_pings must be an integer")
    if not 1 <= count <= MAX_PINGS_PER_DAY:
        raise ScheduleValidationError(f"num_pings must be between 1 and {MAX_PINGS_PER_DAY}")
    return count


def _parse_quiet_periods(value: Any) -> str:
    if value is None:
        return "[]"
    if not isinstance(value, (list, tuple)):
        raise ScheduleValidationError("quiet_periods must be a list of {start, end} objects")

    periods = []
    for item in value:
        if not isinstance(item, dict):
            raise ScheduleValidationError("quiet_periods entries must be {start, end} objects")
        start = item.get("start")
        end = item.get("end")
        if not isinstance(start, str) or not isinstance(end, str):
            raise ScheduleValidationError("quiet period start and end must be HH:MM strings")
        periods.append({"start": start.strip(), "end": end.strip()})
    return json.dumps(periods)


def _parse_is_active(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ScheduleValidationError("is_active must be a boolean")
    return value


# 日本語: (属性名, 受理するキー, パーサ) snake_case と camelCase の両方を受理 / English: (attribute, accepted keys, parser); snake_case and camelCase are both accepted
_SCHEDULE_FIELDS: Sequence[tuple[str, tuple[str, ...], Callable[[Any], Any]]] = (
    ("name", ("name",), _parse_name),
    ("days_of_week", ("days_of_week", "daysOfWeek"), _parse_days_of_week),
    ("start_time", ("start_time", "startTime"), _time_parser("start_time")),
    ("end_time", ("end_time", "endTime"), _time_parser("end_time")),
    ("num_pings", ("num_pings", "numPings"), _parse_num_pings),
    ("quiet_periods", ("quiet_periods", "quietPeriods"), _parse_quiet_periods),
    ("is_active", ("is_active", "isActive"), _parse_is_active),
)


def parse_schedule_changes(payload: Any) -> Dict[str, Any]:
    """Validate a (partial) schedule payload into model attribute values."""
    if not isinstance(payload, dict):
        raise ScheduleValidationError("schedule payload must be an object")

    changes: Dict[str, Any] = {}
    for attribute, keys, parser in _SCHEDULE_FIELDS:
        for key in keys:
            if key in payload:
                changes[attribute] = parser(payload[key])
                break
    return changes


def serialize_quiet_periods(schedule: Schedule) -> List[Dict[str, str]]:
    try:
        periods = json.loads(schedule.quiet_periods or "[]")
    except ValueError:
        return []
    return periods if isinstance(periods, list) else []


def get_user(db: Session, user_id: str) -> UserProfile | None:
    return db.get(UserProfile, user_id)


def get_or_create_user(
    db: Session, email: Any, timezone: Any, now: datetime.datetime
) -> tuple[UserProfile, bool]:
    if not isinstance(email, str) or "@" not in email:
        raise PayloadValidationError("A valid email is required")
    normalized_email = email.strip().lower()

    user = db.exec(select(UserProfile).where(UserProfile.email == normalized_email)).first()
    if user:
        return user, False

    user = UserProfile(
        email=normalized_email,
        timezone=timezone.strip() if is_known_timezone(timezone) else get_default_timezone(),
        created_at=now,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s", user.id)
    return user, True


def update_user(db: Session, user: UserProfile, payload: Any, now: datetime.datetime) -> UserProfile:
    if not isinstance(payload, dict):
        raise PayloadValidationError("user payload must be an object")

    tier = user.tier
    if "tier" in payload:
        tier = payload["tier"]
        if tier not in TIERS:
            raise PayloadValidationError(f"tier must be one of {', '.join(TIERS)}")

    timezone = user.timezone
    if "timezone" in payload:
        if not is_known_timezone(payload["timezone"]):
            raise PayloadValidationError(f"Unknown timezone: {payload['timezone']!r}")
        timezone = payload["timezone"].strip()

    phone = user.phone
    if "phone" in payload:
        phone = payload["phone"]
        if phone is not None and not isinstance(phone, str):
            raise PayloadValidationError("phone must be a string")
        phone = (phone or "").strip() or None
        if phone:
            ensure_sms_enabled(tier)

    timezone_changed = timezone != user.timezone
    user.tier = tier
    user.timezone = timezone
    user.phone = phone
    user.updated_at = now
    db.add(user)

    if timezone_changed:
        # 日本語: 日付境界が変わるため今後のリマインドを再計算 / English: Day boundaries moved, so rebuild the upcoming window
        _refresh_upcoming(db, user, now)

    db.commit()
    db.refresh(user)
    logger.info("Updated user %s", user.id)
    return user


def list_schedules(db: Session, user: UserProfile) -> List[Schedule]:
    return list(
        db.exec(select(Schedule).where(Schedule.user_id == user.id).order_by(Schedule.created_at)).all()
    )


def get_schedule(db: Session, user: UserProfile, schedule_id: str) -> Schedule | None:
    schedule = db.get(Schedule, schedule_id)
    if schedule is None or schedule.user_id != user.id:
        return None
    return schedule


def _events_for_schedules(db: Session, user: UserProfile, schedule_ids: Iterable[str]) -> List[ReminderEvent]:
    ids = list(schedule_ids)
    if not ids:
        return []
    return list(
        db.exec(
            select(ReminderEvent).where(
                ReminderEvent.user_id == user.id, col(ReminderEvent.schedule_id).in_(ids)
            )
        ).all()
    )


def _persist_reconciled(
    db: Session, existing: List[ReminderEvent], reconciled: List[ReminderEvent]
) -> None:
    existing_by_id = {event.id: event for event in existing}
    kept_ids = set()
    for event in reconciled:
        current = existing_by_id.get(event.id)
        if current is None:
            db.add(event)
            continue
        kept_ids.add(event.id)
        if current is not event:
            for field_name in _REGENERATED_FIELDS:
                setattr(current, field_name, getattr(event, field_name))
            db.add(current)

    for event in existing:
        if event.id not in kept_ids:
            db.delete(event)


def _regenerate(
    db: Session,
    user: UserProfile,
    schedule: Schedule,
    existing: List[ReminderEvent],
    now: datetime.datetime,
) -> List[ReminderEvent]:
    reconciled = reconcile_events(schedule, user.timezone, existing, now, get_event_window_days())
    for event in reconciled:
        event.user_id = user.id
    _persist_reconciled(db, existing, reconciled)
    logger.info(
        "Regenerated reminders for schedule %s: %d existing, %d after reconciliation",
        schedule.id,
        len(existing),
        len(reconciled),
    )
    return reconciled


def _refresh_upcoming(db: Session, user: UserProfile, now: datetime.datetime) -> None:
    for schedule in list_schedules(db, user):
        _regenerate(db, user, schedule, _events_for_schedules(db, user, [schedule.id]), now)


def create_schedule(
    db: Session,
    user: UserProfile,
    payload: Any,
    now: datetime.datetime,
    *,
    replace: bool = False,
) -> Schedule:
    """Create a schedule and its forward reminder window.

    With ``replace`` the user's existing schedules are discarded and their
    reminders are reconciled against the new one, so outcomes recorded at the
    same ``(date, time)`` survive.
    """
    changes = parse_schedule_changes(payload)
    existing_schedules = list_schedules(db, user)
    superseded = existing_schedules if replace else []
    ensure_can_add_schedule(user.tier, len(existing_schedules) - len(superseded))

    schedule = Schedule(user_id=user.id, created_at=now, **changes)
    existing_events = _events_for_schedules(db, user, [old.id for old in superseded])
    for old in superseded:
        logger.info("Schedule %s superseded by replacement", old.id)
        db.delete(old)
    db.add(schedule)

    _regenerate(db, user, schedule, existing_events, now)
    db.commit()
    db.refresh(schedule)
    logger.info("Created schedule %s for user %s", schedule.id, user.id)
    return schedule


def update_schedule(
    db: Session, user: UserProfile, schedule: Schedule, payload: Any, now: datetime.datetime
) -> Schedule:
    changes = parse_schedule_changes(payload)
    for attribute, value in changes.items():
        setattr(schedule, attribute, value)
    schedule.updated_at = now
    db.add(schedule)

    _regenerate(db, user, schedule, _events_for_schedules(db, user, [schedule.id]), now)
    db.commit()
    db.refresh(schedule)
    logger.info("Updated schedule %s", schedule.id)
    return schedule


def delete_schedule(db: Session, user: UserProfile, schedule: Schedule, now: datetime.datetime) -> int:
    """Delete a schedule and its unanswered upcoming reminders; history stays."""
    today = local_today(user.timezone, now)
    removed = 0
    for event in _events_for_schedules(db, user, [schedule.id]):
        event_date = coerce_date(event.date)
        if event.status == "scheduled" and event_date is not None and event_date >= today:
            db.delete(event)
            removed += 1
    db.delete(schedule)
    db.commit()
    logger.info("Deleted schedule %s (%d upcoming reminders removed)", schedule.id, removed)
    return removed


def refresh_upcoming_events(db: Session, user: UserProfile, now: datetime.datetime) -> None:
    """Roll every schedule's forward window to start at today."""
    _refresh_upcoming(db, user, now)
    db.commit()


def list_events(db: Session, user: UserProfile, date_value: datetime.date | None = None) -> List[ReminderEvent]:
    statement = select(ReminderEvent).where(ReminderEvent.user_id == user.id)
    if date_value is not None:
        statement = statement.where(ReminderEvent.date == date_value)
    return sort_events_chronologically(db.exec(statement).all())


def get_event(db: Session, user: UserProfile, event_id: str) -> ReminderEvent | None:
    event = db.get(ReminderEvent, event_id)
    if event is None or event.user_id != user.id:
        return None
    return event


def _sync_user_streaks(db: Session, user: UserProfile, now: datetime.datetime) -> None:
    result = compute_streaks(list_events(db, user), user.timezone, get_streak_threshold(), now=now)
    user.current_streak = result.current_streak
    user.longest_streak = max(user.longest_streak or 0, result.best_streak)
    db.add(user)


def record_outcome(
    db: Session, user: UserProfile, event: ReminderEvent, status: Any, now: datetime.datetime
) -> ReminderEvent:
    if status not in TERMINAL_STATUSES:
        raise PayloadValidationError(f"status must be one of {', '.join(TERMINAL_STATUSES)}")
    if event.status in TERMINAL_STATUSES:
        raise ReminderStateError(f"Reminder {event.id} is already {event.status}")

    event.status = status
    event.updated_at = now
    db.add(event)
    db.flush()
    _sync_user_streaks(db, user, now)
    db.commit()
    db.refresh(event)
    logger.info("Reminder %s marked %s", event.id, status)
    return event


def clear_history(db: Session, user: UserProfile, now: datetime.datetime) -> int:
    """Reset every answered reminder back to ``scheduled``."""
    reset = 0
    for event in list_events(db, user):
        if event.status in TERMINAL_STATUSES:
            event.status = "scheduled"
            event.updated_at = now
            db.add(event)
            reset += 1
    db.flush()
    _sync_user_streaks(db, user, now)
    db.commit()
    logger.info("Cleared history for user %s (%d reminders reset)", user.id, reset)
    return reset


__all__ = [
    "MAX_PINGS_PER_DAY",
    "PayloadValidationError",
    "ScheduleValidationError",
    "ReminderStateError",
    "parse_schedule_changes",
    "serialize_quiet_periods",
    "get_user",
    "get_or_create_user",
    "update_user",
    "list_schedules",
    "get_schedule",
    "create_schedule",
    "update_schedule",
    "delete_schedule",
    "refresh_upcoming_events",
    "list_events",
    "get_event",
    "record_outcome",
    "clear_history",
]
