from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from attendance_tracker.api.deps import RESET_SECRET_HEADER, get_services
from attendance_tracker.config import Settings
from attendance_tracker.container import Services
from attendance_tracker.main import app
from attendance_tracker.models.schedule import ScheduleConfig, ScheduleSlot
from attendance_tracker.services.coordinator import MutationCoordinator
from attendance_tracker.services.identity import VerifiedIdentity, hash_reset_secret

from conftest import IST, MONDAY, StaticAdmins, StaticScheduleSource, StaticVerifier, stats

STUDENT = {"Authorization": "Bearer student-token"}
ADMIN = {"Authorization": "Bearer admin-token"}
OUTSIDER = {"Authorization": "Bearer outsider-token"}


@pytest.fixture
def services(store) -> Services:
    schedules = StaticScheduleSource(
        ScheduleConfig(days={"Monday": [ScheduleSlot(subject="Maths"), ScheduleSlot(subject="English")]})
    )
    settings = Settings(
        admin_email_domain="ves.ac.in",
        reset_auth_mode="either",
        reset_secret_hash=hash_reset_secret("s3cret"),
    )
    verifier = StaticVerifier(
        {
            "student-token": VerifiedIdentity("u1", "student@ves.ac.in"),
            "admin-token": VerifiedIdentity("a1", "head@ves.ac.in"),
            "outsider-token": VerifiedIdentity("x1", "head@gmail.com"),
        }
    )
    return Services(
        settings=settings,
        store=store,
        schedules=schedules,
        verifier=verifier,
        admins=StaticAdmins({"head@ves.ac.in", "head@gmail.com"}),
        coordinator=MutationCoordinator(store, schedules, tz=IST, rate_limit=timedelta(seconds=2)),
    )


@pytest.fixture
def client(services):
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def _body(**overrides):
    body = {"subject": "Maths", "status": "present", "date": MONDAY, "slotIndex": 0}
    body.update(overrides)
    return body


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_mark_attendance(client, store):
    response = client.post("/api/attendance/mark", json=_body(), headers=STUDENT)

    assert response.status_code == 200
    assert response.json() == {"success": True, "changed": True}
    assert store.records["u1"].attendance["Maths"] == stats(1, 1)

    me = client.get("/api/attendance/me", headers=STUDENT).json()
    assert me["subjects"] == [{"subject": "Maths", "present": 1, "total": 1, "percentage": 100.0}]
    assert me["daily_logs"][MONDAY]["0"] == {"status": "present", "subject": "Maths"}


def test_mark_requires_a_token(client):
    response = client.post("/api/attendance/mark", json=_body())

    assert response.status_code == 401
    assert response.json()["reason"] == "invalid_credential"


def test_bad_token(client):
    response = client.post("/api/attendance/mark", json=_body(), headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_missing_fields(client):
    response = client.post("/api/attendance/mark", json={"subject": "Maths"}, headers=STUDENT)

    assert response.status_code == 400
    assert response.json()["error"] == "Missing required fields"
    assert response.json()["reason"] == "missing_fields"


def test_rejections_carry_reason(client, store):
    response = client.post("/api/attendance/mark", json=_body(subject="English"), headers=STUDENT)

    assert response.status_code == 400
    assert response.json()["reason"] == "subject_mismatch"
    assert "Maths" in response.json()["error"]
    assert store.writes == []


def test_rate_limit_status(client):
    client.post("/api/attendance/mark", json=_body(), headers=STUDENT)
    response = client.post("/api/attendance/mark", json=_body(status="absent"), headers=STUDENT)

    assert response.status_code == 429
    assert response.json()["reason"] == "rate_limited"


def test_unknown_user(client, store):
    del store.records["u1"]
    response = client.post("/api/attendance/mark", json=_body(), headers=STUDENT)

    assert response.status_code == 404
    assert response.json() == {"error": "User does not exist", "reason": "user_not_found"}


def test_reset_by_admin(client, store):
    store.records["u1"].attendance["Maths"] = stats(4, 5)

    response = client.post("/api/admin/reset-semester", headers=ADMIN)

    assert response.status_code == 200
    assert response.json() == {"success": True, "updated": 1, "batches": 1}
    assert store.records["u1"].attendance == {}


def test_reset_with_shared_secret(client):
    response = client.post("/api/admin/reset-semester", headers={RESET_SECRET_HEADER: "s3cret"})
    assert response.status_code == 200

    response = client.post("/api/admin/reset-semester", headers={RESET_SECRET_HEADER: "wrong"})
    assert response.status_code == 403


@pytest.mark.parametrize(
    "headers,error",
    [(STUDENT, "Not an Admin"), (OUTSIDER, "Unauthorized Domain")],
)
def test_reset_refused(client, store, headers, error):
    store.records["u1"].attendance["Maths"] = stats(4, 5)

    response = client.post("/api/admin/reset-semester", headers=headers)

    assert response.status_code == 403
    assert response.json()["error"] == error
    assert store.records["u1"].attendance["Maths"] == stats(4, 5)


def test_reset_failure_reports_partial_result(client, store):
    store.fail_reset_on_batch = 0

    response = client.post("/api/admin/reset-semester", headers=ADMIN)

    assert response.status_code == 500
    assert response.json()["error"] == "Action Failed"
    assert response.json()["updated"] == 0


def test_cancel_a_lecture_then_mark(client):
    response = client.put(f"/api/schedule/overrides/{MONDAY}/0", json={"cancelled": True}, headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["slots"]["0"]["cancelled"] is True

    response = client.post("/api/attendance/mark", json=_body(), headers=STUDENT)
    assert response.json()["reason"] == "slot_cancelled"


def test_students_cannot_edit_the_timetable(client):
    response = client.put("/api/schedule/", json={"days": {"Monday": [{"subject": "Art"}]}}, headers=STUDENT)
    assert response.status_code == 403


def test_admin_replaces_the_timetable(client):
    response = client.put("/api/schedule/", json={"days": {"Monday": [{"subject": "Art"}]}}, headers=ADMIN)
    assert response.status_code == 200

    schedule = client.get("/api/schedule/", headers=STUDENT).json()
    assert schedule["days"]["Monday"][0]["subject"] == "Art"

    response = client.put("/api/schedule/", json={"days": {"Funday": []}}, headers=ADMIN)
    assert response.status_code == 400


def test_report_download(client, store):
    store.records["u1"].attendance["Maths"] = stats(3, 4)

    response = client.get("/api/attendance/report", headers=ADMIN)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "u1,student@ves.ac.in,Maths,3,4,75.0" in response.text
