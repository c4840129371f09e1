"""FastAPI application assembly."""

from __future__ import annotations

import os

from fastapi import FastAPI
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from hydration_ping.core.config import PROXY_PREFIX
from hydration_ping.core import db as core_db
from hydration_ping.web.routers import (
    health_router,
    reminders_router,
    schedules_router,
    stats_router,
    users_router,
)


def create_app() -> FastAPI:
    # 日本語: 逆プロキシ配下運用を想定して root_path を環境変数から解決 / English: Resolve root_path from env for reverse-proxy deployments
    proxy_prefix = os.getenv("PROXY_PREFIX", PROXY_PREFIX)

    app = FastAPI(title="Hydration Habit Ping", root_path=proxy_prefix)
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

    # 日本語: 機能別ルーターを順次登録 / English: Register feature routers
    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(schedules_router)
    app.include_router(reminders_router)
    app.include_router(stats_router)

    @app.on_event("startup")
    def _startup_init_db() -> None:
        # 日本語: 起動時にマイグレーション適用を保証 / English: Ensure migrations are applied on startup
        core_db.ensure_db_initialized()

    return app


# 日本語: import 時点で既定アプリを構築 / English: Build default app instance at import time
app = create_app()
