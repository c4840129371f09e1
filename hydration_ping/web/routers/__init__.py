"""Router exports."""

# 日本語: 各機能ルーターを集約して application.py から一括 import 可能にする / English: Re-export feature routers for centralized app wiring
from .health_router import router as health_router
from .reminders_router import router as reminders_router
from .schedules_router import router as schedules_router
from .stats_router import router as stats_router
from .users_router import router as users_router

__all__ = [
    "health_router",
    "users_router",
    "schedules_router",
    "reminders_router",
    "stats_router",
]
