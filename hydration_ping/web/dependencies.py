"""Shared FastAPI dependencies."""

from __future__ import annotations

import datetime


def get_now() -> datetime.datetime:
    # 日本語: 現在時刻は依存性として注入しテストで固定可能にする / English: Current instant is injected so tests can pin it
    return datetime.datetime.now(datetime.timezone.utc)
