"""Statistics API routes."""

from __future__ import annotations

import datetime

from fastapi import APIRouter, Depends
from sqlmodel import Session

from hydration_ping.core.db import get_db
from hydration_ping.services.statistics_service import compute_streaks
from hydration_ping.web import handlers as web_handlers
from hydration_ping.web.dependencies import get_now

router = APIRouter()


@router.get("/api/users/{user_id}/stats", name="api_stats")
def api_stats(
    user_id: str,
    db: Session = Depends(get_db),
    now: datetime.datetime = Depends(get_now),
):
    return web_handlers.stats(user_id, db, now=now, compute_streaks_fn=compute_streaks)
