"""Opaque identifier helpers."""

from __future__ import annotations

import uuid


def create_id(prefix: str = "id") -> str:
    return f"{prefix}-{uuid.uuid4()}"
