import datetime
import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# 日本語: import 時点のエンジン生成を SQLite に向ける / English: Point the import-time engine at SQLite
os.environ.setdefault("DATABASE_URL", "sqlite://")

from sqlmodel import Session, SQLModel, create_engine  # noqa: E402
from sqlmodel.pool import StaticPool  # noqa: E402

from hydration_ping import models as _models  # noqa: E402,F401

# 2025-01-06 is a Monday.
FIXED_NOW = datetime.datetime(2025, 1, 6, 8, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "HYDRATION_STREAK_THRESHOLD",
        "HYDRATION_EVENT_WINDOW_DAYS",
        "HYDRATION_PRO_SCHEDULE_LIMIT",
        "DEFAULT_TIMEZONE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(test_engine)
    yield test_engine
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture()
def session(engine):
    with Session(engine) as db:
        yield db


@pytest.fixture()
def now():
    return FIXED_NOW
