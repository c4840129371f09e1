"""ASGI entrypoint: ``uvicorn hydration_ping.asgi:app``."""

import logging

from hydration_ping.core.config import get_log_level

logging.basicConfig(
    level=get_log_level(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from hydration_ping.application import app, create_app  # noqa: E402

__all__ = ["app", "create_app"]
