"""User profile API routes."""

from __future__ import annotations

import datetime

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from hydration_ping.core.db import get_db
from hydration_ping.web import handlers as web_handlers
from hydration_ping.web.dependencies import get_now

# 日本語: 利用者プロフィールAPI群 / English: User profile API router
router = APIRouter()


@router.post("/api/users", name="api_create_user")
async def api_create_user(
    request: Request,
    db: Session = Depends(get_db),
    now: datetime.datetime = Depends(get_now),
):
    # 日本語: メールアドレスで検索し、なければ作成 / English: Find by email or create
    return await web_handlers.create_user(request, db, now=now)


@router.get("/api/users/{user_id}", name="api_get_user")
def api_get_user(user_id: str, db: Session = Depends(get_db)):
    return web_handlers.get_user(user_id, db)


@router.patch("/api/users/{user_id}", name="api_update_user")
async def api_update_user(
    user_id: str,
    request: Request,
    db: Session = Depends(get_db),
    now: datetime.datetime = Depends(get_now),
):
    # 日本語: プラン・タイムゾーン・電話番号の更新 / English: Update tier, timezone and phone
    return await web_handlers.update_user(request, user_id, db, now=now)
