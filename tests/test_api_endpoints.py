import datetime
from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from hydration_ping.core import db as db_module
from hydration_ping.core.db import get_db
from hydration_ping.services import reminder_store_service
from hydration_ping.web.dependencies import get_now

WORKDAY_PAYLOAD = {
    "name": "Workday",
    "daysOfWeek": [1, 2, 3, 4, 5],
    "startTime": "09:00",
    "endTime": "19:00",
    "numPings": 4,
}


@pytest.fixture()
def clock(now):
    return {"now": now}


@pytest.fixture()
def app_module(monkeypatch):
    from hydration_ping import application

    monkeypatch.setattr(db_module, "ensure_db_initialized", lambda: None)
    return application


@contextmanager
def _client(app_module, engine, clock):
    def _override_db():
        with Session(engine) as db:
            yield db

    app_module.app.dependency_overrides[get_db] = _override_db
    app_module.app.dependency_overrides[get_now] = lambda: clock["now"]
    with TestClient(app_module.app) as client:
        yield client
    app_module.app.dependency_overrides.clear()


@pytest.fixture()
def client(app_module, engine, clock):
    with _client(app_module, engine, clock) as test_client:
        yield test_client


@pytest.fixture()
def user_id(client):
    response = client.post("/api/users", json={"email": "walker@example.com", "timezone": "UTC"})
    assert response.status_code == 200
    return response.json()["user"]["id"]


@pytest.fixture()
def schedule(client, user_id):
    response = client.post(f"/api/users/{user_id}/schedules", json=WORKDAY_PAYLOAD)
    assert response.status_code == 200
    return response.json()["schedule"]


def _reminders(client, user_id, date=None):
    params = {"date": date} if date else None
    response = client.get(f"/api/users/{user_id}/reminders", params=params)
    assert response.status_code == 200
    return response.json()["reminders"]


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_user_is_find_or_create(client, user_id):
    response = client.post("/api/users", json={"email": "WALKER@example.com"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["created"] is False
    assert payload["user"]["id"] == user_id
    assert payload["user"]["capabilities"] == {"max_schedules": 1, "sms_enabled": False}


def test_create_user_rejects_missing_email(client):
    response = client.post("/api/users", json={"timezone": "UTC"})

    assert response.status_code == 400


def test_malformed_json_is_rejected(client):
    response = client.post(
        "/api/users", content="not json", headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Request body must be valid JSON"


def test_unknown_user_is_404(client):
    response = client.get("/api/users/user-missing")

    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_create_schedule_returns_ping_times(schedule):
    assert schedule["days_of_week"] == [1, 2, 3, 4, 5]
    assert schedule["ping_times"] == ["11:00", "13:00", "15:00", "17:00"]
    assert schedule["quiet_periods"] == []
    assert schedule["is_active"] is True


def test_invalid_schedule_payload_is_400(client, user_id):
    response = client.post(
        f"/api/users/{user_id}/schedules", json=dict(WORKDAY_PAYLOAD, daysOfWeek=["mon"])
    )

    assert response.status_code == 400
    assert "days_of_week" in response.json()["detail"]


def test_second_schedule_on_free_plan_is_403_unless_replacing(client, user_id, schedule):
    response = client.post(f"/api/users/{user_id}/schedules", json=WORKDAY_PAYLOAD)
    assert response.status_code == 403
    assert response.json()["detail"] == "The free plan supports one schedule."

    replaced = client.post(
        f"/api/users/{user_id}/schedules", params={"replace": "true"}, json=WORKDAY_PAYLOAD
    )
    assert replaced.status_code == 200
    listed = client.get(f"/api/users/{user_id}/schedules").json()["schedules"]
    assert [item["id"] for item in listed] == [replaced.json()["schedule"]["id"]]


def test_update_schedule_recomputes_ping_times(client, user_id, schedule):
    response = client.put(
        f"/api/users/{user_id}/schedules/{schedule['id']}",
        json={"quietPeriods": [{"start": "13:00", "end": "14:00"}]},
    )

    assert response.status_code == 200
    assert response.json()["schedule"]["ping_times"] == ["11:00", "15:00", "17:00"]
    assert len(_reminders(client, user_id)) == 5 * 3


def test_schedule_of_another_user_is_404(client, user_id, schedule):
    other = client.post("/api/users", json={"email": "other@example.com"}).json()["user"]["id"]

    response = client.put(f"/api/users/{other}/schedules/{schedule['id']}", json={"name": "Mine"})

    assert response.status_code == 404


def test_next_ping_label(client, user_id, schedule):
    response = client.get(f"/api/users/{user_id}/schedules/{schedule['id']}/next")

    assert response.status_code == 200
    assert response.json()["next_ping"] == {
        "at": "2025-01-06T11:00:00+00:00",
        "date": "2025-01-06",
        "time": "11:00",
        "label": "Today at 11:00 AM",
    }


def test_reminders_filtered_by_date(client, user_id, schedule):
    reminders = _reminders(client, user_id, "2025-01-06")

    assert [item["time"] for item in reminders] == ["11:00", "13:00", "15:00", "17:00"]
    assert {item["schedule_id"] for item in reminders} == {schedule["id"]}


def test_reminders_with_bad_date_is_400(client, user_id):
    response = client.get(f"/api/users/{user_id}/reminders", params={"date": "06/01/2025"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid date format"


def test_next_reminder_follows_the_clock(client, user_id, schedule, clock):
    assert client.get(f"/api/users/{user_id}/reminders/next").json()["reminder"]["time"] == "11:00"

    clock["now"] = datetime.datetime(2025, 1, 6, 11, 30, tzinfo=datetime.timezone.utc)
    assert client.get(f"/api/users/{user_id}/reminders/next").json()["reminder"]["time"] == "13:00"


def test_record_outcome_flow(client, user_id, schedule):
    reminder = _reminders(client, user_id, "2025-01-06")[0]
    url = f"/api/users/{user_id}/reminders/{reminder['id']}"

    bad = client.put(url, json={"status": "maybe"})
    assert bad.status_code == 400

    first = client.put(url, json={"status": "drank"})
    assert first.status_code == 200
    assert first.json()["reminder"]["status"] == "drank"
    assert first.json()["reminder"]["updated_at"] is not None

    second = client.put(url, json={"status": "skipped"})
    assert second.status_code == 409

    missing = client.put(f"/api/users/{user_id}/reminders/reminder-missing", json={"status": "drank"})
    assert missing.status_code == 404


def test_stats_and_streaks(client, user_id, schedule):
    for reminder in _reminders(client, user_id, "2025-01-06")[:3]:
        client.put(f"/api/users/{user_id}/reminders/{reminder['id']}", json={"status": "drank"})

    response = client.get(f"/api/users/{user_id}/stats")

    assert response.status_code == 200
    payload = response.json()
    assert payload["today"] == "2025-01-06"
    assert payload["threshold"] == 0.6
    assert payload["current_streak"] == 1
    assert payload["best_streak"] == 1
    dates = [item["date"] for item in payload["daily_stats"]]
    assert dates == sorted(dates)
    assert payload["daily_stats"][0] == {
        "date": "2025-01-06",
        "total": 4,
        "drank": 3,
        "skipped": 0,
        "completion": 75,
    }
    user = client.get(f"/api/users/{user_id}").json()["user"]
    assert (user["current_streak"], user["longest_streak"]) == (1, 1)


def test_threshold_comes_from_environment(client, user_id, schedule, monkeypatch):
    monkeypatch.setenv("HYDRATION_STREAK_THRESHOLD", "2.5")

    assert client.get(f"/api/users/{user_id}/stats").json()["threshold"] == 1.0


def test_clear_history(client, user_id, schedule):
    reminder = _reminders(client, user_id, "2025-01-06")[0]
    client.put(f"/api/users/{user_id}/reminders/{reminder['id']}", json={"status": "skipped"})

    response = client.post(f"/api/users/{user_id}/reminders/clear")

    assert response.status_code == 200
    assert response.json() == {"status": "cleared", "reset": 1}
    assert {item["status"] for item in _reminders(client, user_id)} == {"scheduled"}


def test_delete_schedule(client, user_id, schedule):
    response = client.delete(f"/api/users/{user_id}/schedules/{schedule['id']}")

    assert response.status_code == 200
    assert response.json() == {"status": "deleted", "removed_reminders": 20}
    assert client.get(f"/api/users/{user_id}/schedules").json()["schedules"] == []


def test_phone_requires_pro_plan(client, user_id):
    url = f"/api/users/{user_id}"

    denied = client.patch(url, json={"phone": "+15555550100"})
    assert denied.status_code == 403
    assert denied.json()["detail"] == "SMS features are only available to Pro users."

    allowed = client.patch(url, json={"tier": "pro", "phone": "+15555550100"})
    assert allowed.status_code == 200
    assert allowed.json()["user"]["capabilities"]["sms_enabled"] is True


def test_database_failure_is_500(client, user_id, monkeypatch):
    def _fail(*_args, **_kwargs):
        raise OperationalError("INSERT", {}, Exception("database is down"))

    monkeypatch.setattr(reminder_store_service, "create_schedule", _fail)

    response = client.post(f"/api/users/{user_id}/schedules", json=WORKDAY_PAYLOAD)

    assert response.status_code == 500


def test_timezone_paths_never_reach_the_zone_database(client, user_id):
    created = client.post("/api/users", json={"email": "path@example.com", "timezone": "/etc/passwd"})
    assert created.status_code == 200
    assert created.json()["user"]["timezone"] == "UTC"

    for timezone in ("/etc/passwd", "/usr/share/zoneinfo/Asia/Tokyo"):
        response = client.patch(f"/api/users/{user_id}", json={"timezone": timezone})
        assert response.status_code == 400
        assert "Unknown timezone" in response.json()["detail"]


def test_startup_applies_migrations(app_module, engine, clock, monkeypatch):
    calls = []
    monkeypatch.setattr(db_module, "ensure_db_initialized", lambda: calls.append("migrate"))

    with _client(app_module, engine, clock) as client:
        assert client.get("/api/health").status_code == 200

    assert calls == ["migrate"]
