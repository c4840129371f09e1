"""Health check route."""

from __future__ import annotations

from fastapi import APIRouter

from hydration_ping.web import handlers as web_handlers

router = APIRouter()


@router.get("/api/health", name="api_health")
def api_health():
    return web_handlers.health()
