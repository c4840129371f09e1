"""Schedule and reminder SQLModel models."""

import datetime

from sqlalchemy import Column, DateTime, Text
from sqlmodel import Field, SQLModel

from hydration_ping.core.ids import create_id

REMINDER_STATUSES = ("scheduled", "drank", "skipped")
TERMINAL_STATUSES = ("drank", "skipped")


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


# 日本語: 1日のリマインド設定 / English: Named daily reminder configuration
class Schedule(SQLModel, table=True):
    __tablename__ = "schedule"

    id: str = Field(default_factory=lambda: create_id("schedule"), primary_key=True, max_length=64)
    user_id: str = Field(foreign_key="user_profile.id", index=True, max_length=64)
    name: str = Field(default="Hydration", max_length=100)
    # 日本語: カンマ区切り曜日(0=日 ... 6=土) / English: Comma-separated weekdays (0=Sun ... 6=Sat)
    days_of_week: str = Field(default="1,2,3,4,5", max_length=50)
    start_time: str = Field(default="09:00", max_length=10)
    end_time: str = Field(default="19:00", max_length=10)
    num_pings: int = Field(default=4)
    # 日本語: [{"start": "HH:MM", "end": "HH:MM"}] の JSON / English: JSON list of {"start", "end"} ranges
    quiet_periods: str = Field(default="[]", sa_column=Column(Text, nullable=False))
    is_active: bool = Field(default=True)
    created_at: datetime.datetime = Field(
        default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime.datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))


# 日本語: 日付付きの個別リマインド / English: One concrete, dated reminder instance
class ReminderEvent(SQLModel, table=True):
    __tablename__ = "reminder_event"

    id: str = Field(default_factory=lambda: create_id("reminder"), primary_key=True, max_length=64)
    user_id: str | None = Field(default=None, index=True, max_length=64)
    # 日本語: 履歴保持のため外部キーにしない弱参照 / English: Weak reference, events outlive their schedule
    schedule_id: str = Field(index=True, max_length=64)
    schedule_name: str = Field(default="", max_length=100)
    timezone: str = Field(default="UTC", max_length=64)
    date: datetime.date = Field(index=True)
    time: str = Field(default="00:00", max_length=10)
    scheduled_at: datetime.datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    status: str = Field(default="scheduled", max_length=10)
    created_at: datetime.datetime = Field(
        default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime.datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
