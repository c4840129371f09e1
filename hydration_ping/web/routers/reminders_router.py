"""Reminder event API routes."""

from __future__ import annotations

import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from hydration_ping.core.db import get_db
from hydration_ping.services.statistics_service import next_scheduled_event
from hydration_ping.web import handlers as web_handlers
from hydration_ping.web.dependencies import get_now

# 日本語: リマインドイベントAPI群 / English: Reminder event router
router = APIRouter()


@router.get("/api/users/{user_id}/reminders", name="api_list_reminders")
def api_list_reminders(user_id: str, date: Optional[str] = None, db: Session = Depends(get_db)):
    return web_handlers.list_reminders(user_id, db, date_str=date)


@router.get("/api/users/{user_id}/reminders/next", name="api_next_reminder")
def api_next_reminder(
    user_id: str,
    db: Session = Depends(get_db),
    now: datetime.datetime = Depends(get_now),
):
    return web_handlers.next_reminder(user_id, db, now=now, next_scheduled_event_fn=next_scheduled_event)


@router.post("/api/users/{user_id}/reminders/clear", name="api_clear_reminders")
def api_clear_reminders(
    user_id: str,
    db: Session = Depends(get_db),
    now: datetime.datetime = Depends(get_now),
):
    # 日本語: 回答済みの記録をすべて未回答へ戻す / English: Reset every answered reminder
    return web_handlers.clear_reminders(user_id, db, now=now)


@router.put("/api/users/{user_id}/reminders/{event_id}", name="api_update_reminder")
async def api_update_reminder(
    user_id: str,
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
    now: datetime.datetime = Depends(get_now),
):
    # 日本語: drank / skipped を記録 / English: Record drank or skipped
    return await web_handlers.update_reminder(request, user_id, event_id, db, now=now)
