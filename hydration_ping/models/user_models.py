"""User profile SQLModel model."""

from __future__ import annotations

import datetime

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from hydration_ping.core.ids import create_id


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


# 日本語: 利用者プロフィール (タイムゾーン・プラン・連続記録) / English: User profile with timezone, plan tier and stored streaks
class UserProfile(SQLModel, table=True):
    __tablename__ = "user_profile"

    id: str = Field(default_factory=lambda: create_id("user"), primary_key=True, max_length=64)
    email: str = Field(max_length=255, unique=True, index=True)
    timezone: str = Field(default="UTC", max_length=64)
    phone: str | None = Field(default=None, max_length=32)
    tier: str = Field(default="free", max_length=10)
    current_streak: int = Field(default=0)
    longest_streak: int = Field(default=0)
    created_at: datetime.datetime = Field(
        default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime.datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
