"""HTTP handler implementations used by the feature routers."""

from __future__ import annotations

import datetime
from typing import Any, Dict

from fastapi import HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from hydration_ping.core.config import get_streak_threshold
from hydration_ping.models import ReminderEvent, Schedule, UserProfile
from hydration_ping.services import reminder_store_service as store
from hydration_ping.services.ping_scheduler_service import compute_ping_times
from hydration_ping.services.statistics_service import build_daily_stats
from hydration_ping.services.tier_service import TierLimitError, capabilities_for_tier
from hydration_ping.services.time_service import local_today


def _isoformat(value: datetime.datetime | datetime.date | None) -> str | None:
    return value.isoformat() if value is not None else None


def serialize_user(user: UserProfile) -> Dict[str, Any]:
    capabilities = capabilities_for_tier(user.tier)
    return {
        "id": user.id,
        "email": user.email,
        "timezone": user.timezone,
        "phone": user.phone,
        "tier": user.tier,
        "current_streak": user.current_streak,
        "longest_streak": user.longest_streak,
        "capabilities": {
            "max_schedules": capabilities.max_schedules,
            "sms_enabled": capabilities.sms_enabled,
        },
        "created_at": _isoformat(user.created_at),
        "updated_at": _isoformat(user.updated_at),
    }


def serialize_schedule(schedule: Schedule) -> Dict[str, Any]:
    return {
        "id": schedule.id,
        "user_id": schedule.user_id,
        "name": schedule.name,
        "days_of_week": [int(day) for day in (schedule.days_of_week or "").split(",") if day.strip()],
        "start_time": schedule.start_time,
        "end_time": schedule.end_time,
        "num_pings": schedule.num_pings,
        "quiet_periods": store.serialize_quiet_periods(schedule),
        "is_active": schedule.is_active,
        "ping_times": compute_ping_times(schedule),
        "created_at": _isoformat(schedule.created_at),
        "updated_at": _isoformat(schedule.updated_at),
    }


def serialize_event(event: ReminderEvent) -> Dict[str, Any]:
    return {
        "id": event.id,
        "schedule_id": event.schedule_id,
        "schedule_name": event.schedule_name,
        "timezone": event.timezone,
        "date": _isoformat(event.date),
        "time": event.time,
        "scheduled_at": _isoformat(event.scheduled_at),
        "status": event.status,
        "created_at": _isoformat(event.created_at),
        "updated_at": _isoformat(event.updated_at),
    }


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")


def _load_user(db: Session, user_id: str) -> UserProfile:
    user = store.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _load_schedule(db: Session, user: UserProfile, schedule_id: str) -> Schedule:
    schedule = store.get_schedule(db, user, schedule_id)
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return schedule


def _run_write(db: Session, operation, *args, **kwargs):
    # 日本語: ドメイン例外を HTTP ステータスへ変換 / English: Map domain errors onto HTTP status codes
    try:
        return operation(db, *args, **kwargs)
    except store.PayloadValidationError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(exc))
    except TierLimitError as exc:
        db.rollback()
        raise HTTPException(status_code=403, detail=str(exc))
    except store.ReminderStateError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(exc))
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(status_code=500, detail=str(exc))


def health():
    return {"status": "ok"}


async def create_user(request: Request, db: Session, *, now: datetime.datetime):
    payload = await _read_json(request)
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="user payload must be an object")
    user, created = _run_write(db, store.get_or_create_user, payload.get("email"), payload.get("timezone"), now)
    return {"user": serialize_user(user), "created": created}


def get_user(user_id: str, db: Session):
    return {"user": serialize_user(_load_user(db, user_id))}


async def update_user(request: Request, user_id: str, db: Session, *, now: datetime.datetime):
    user = _load_user(db, user_id)
    payload = await _read_json(request)
    user = _run_write(db, store.update_user, user, payload, now)
    return {"user": serialize_user(user)}


def list_schedules(user_id: str, db: Session):
    user = _load_user(db, user_id)
    return {"schedules": [serialize_schedule(schedule) for schedule in store.list_schedules(db, user)]}


async def create_schedule(
    request: Request,
    user_id: str,
    db: Session,
    *,
    now: datetime.datetime,
    replace: bool = False,
):
    user = _load_user(db, user_id)
    payload = await _read_json(request)
    schedule = _run_write(db, store.create_schedule, user, payload, now, replace=replace)
    return {"schedule": serialize_schedule(schedule)}


async def update_schedule(
    request: Request,
    user_id: str,
    schedule_id: str,
    db: Session,
    *,
    now: datetime.datetime,
):
    user = _load_user(db, user_id)
    schedule = _load_schedule(db, user, schedule_id)
    payload = await _read_json(request)
    schedule = _run_write(db, store.update_schedule, user, schedule, payload, now)
    return {"schedule": serialize_schedule(schedule)}


def delete_schedule(user_id: str, schedule_id: str, db: Session, *, now: datetime.datetime):
    user = _load_user(db, user_id)
    schedule = _load_schedule(db, user, schedule_id)
    removed = _run_write(db, store.delete_schedule, user, schedule, now)
    return {"status": "deleted", "removed_reminders": removed}


def next_ping(
    user_id: str,
    schedule_id: str,
    db: Session,
    *,
    now: datetime.datetime,
    find_next_ping_fn,
):
    user = _load_user(db, user_id)
    schedule = _load_schedule(db, user, schedule_id)
    upcoming = find_next_ping_fn(schedule, user.timezone, now)
    if upcoming is None:
        return {"next_ping": None}
    return {
        "next_ping": {
            "at": upcoming.at.isoformat(),
            "date": upcoming.date,
            "time": upcoming.time,
            "label": upcoming.label,
        }
    }


def list_reminders(user_id: str, db: Session, *, date_str: str | None = None):
    user = _load_user(db, user_id)
    date_value = None
    if date_str:
        try:
            date_value = datetime.datetime.strptime(date_str, "%Y-%m-%d").date()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid date format")
    events = store.list_events(db, user, date_value)
    return {"reminders": [serialize_event(event) for event in events]}


def next_reminder(user_id: str, db: Session, *, now: datetime.datetime, next_scheduled_event_fn):
    user = _load_user(db, user_id)
    event = next_scheduled_event_fn(store.list_events(db, user), user.timezone, now)
    return {"reminder": serialize_event(event) if event else None}


async def update_reminder(
    request: Request,
    user_id: str,
    event_id: str,
    db: Session,
    *,
    now: datetime.datetime,
):
    user = _load_user(db, user_id)
    event = store.get_event(db, user, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Reminder not found")
    payload = await _read_json(request)
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="reminder payload must be an object")
    event = _run_write(db, store.record_outcome, user, event, payload.get("status"), now)
    return {"reminder": serialize_event(event), "user": serialize_user(user)}


def clear_reminders(user_id: str, db: Session, *, now: datetime.datetime):
    user = _load_user(db, user_id)
    reset = _run_write(db, store.clear_history, user, now)
    return {"status": "cleared", "reset": reset}


def stats(user_id: str, db: Session, *, now: datetime.datetime, compute_streaks_fn):
    user = _load_user(db, user_id)
    events = store.list_events(db, user)
    threshold = get_streak_threshold()
    daily_stats = build_daily_stats(events)
    streaks = compute_streaks_fn(events, user.timezone, threshold, now=now)
    return {
        "today": local_today(user.timezone, now).isoformat(),
        "threshold": threshold,
        "daily_stats": [daily_stats[key].to_dict() for key in sorted(daily_stats)],
        "current_streak": streaks.current_streak,
        "best_streak": streaks.best_streak,
    }
