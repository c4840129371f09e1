"""Core package exports."""

from .config import (
    BASE_DIR,
    DATABASE_URL,
    PROXY_PREFIX,
    get_default_timezone,
    get_event_window_days,
    get_pro_schedule_limit,
    get_streak_threshold,
)
from .db import Session, create_session, engine, get_db

__all__ = [
    "BASE_DIR",
    "DATABASE_URL",
    "PROXY_PREFIX",
    "get_default_timezone",
    "get_event_window_days",
    "get_pro_schedule_limit",
    "get_streak_threshold",
    "engine",
    "Session",
    "create_session",
    "get_db",
]
