"""Schedule API routes."""

from __future__ import annotations

import datetime

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from hydration_ping.core.db import get_db
from hydration_ping.services.ping_scheduler_service import find_next_ping
from hydration_ping.web import handlers as web_handlers
from hydration_ping.web.dependencies import get_now

# 日本語: スケジュール管理API群 / English: Schedule management router
router = APIRouter()


@router.get("/api/users/{user_id}/schedules", name="api_list_schedules")
def api_list_schedules(user_id: str, db: Session = Depends(get_db)):
    return web_handlers.list_schedules(user_id, db)


@router.post("/api/users/{user_id}/schedules", name="api_create_schedule")
async def api_create_schedule(
    user_id: str,
    request: Request,
    replace: bool = False,
    db: Session = Depends(get_db),
    now: datetime.datetime = Depends(get_now),
):
    # 日本語: replace=true なら既存スケジュールを置き換える / English: replace=true supersedes existing schedules
    return await web_handlers.create_schedule(request, user_id, db, now=now, replace=replace)


@router.put("/api/users/{user_id}/schedules/{schedule_id}", name="api_update_schedule")
async def api_update_schedule(
    user_id: str,
    schedule_id: str,
    request: Request,
    db: Session = Depends(get_db),
    now: datetime.datetime = Depends(get_now),
):
    return await web_handlers.update_schedule(request, user_id, schedule_id, db, now=now)


@router.delete("/api/users/{user_id}/schedules/{schedule_id}", name="api_delete_schedule")
def api_delete_schedule(
    user_id: str,
    schedule_id: str,
    db: Session = Depends(get_db),
    now: datetime.datetime = Depends(get_now),
):
    return web_handlers.delete_schedule(user_id, schedule_id, db, now=now)


@router.get("/api/users/{user_id}/schedules/{schedule_id}/next", name="api_next_ping")
def api_next_ping(
    user_id: str,
    schedule_id: str,
    db: Session = Depends(get_db),
    now: datetime.datetime = Depends(get_now),
):
    # 日本語: 次回の通知時刻を算出 / English: Compute the next upcoming ping
    return web_handlers.next_ping(user_id, schedule_id, db, now=now, find_next_ping_fn=find_next_ping)
