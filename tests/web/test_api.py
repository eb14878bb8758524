from __future__ import annotations

import base64
from datetime import timedelta

import pytest

from smart_attendance.container import wire_container
from smart_attendance.main import create_app

from conftest import CLASSROOM, jpeg_bytes


@pytest.fixture
def container(feed, attendance_repo, courses_repo, timetable_repo, profiles_repo, auth_provider, storage, timers):
    return wire_container(
        feed=feed,
        attendance_repo=attendance_repo,
        courses_repo=courses_repo,
        timetable_repo=timetable_repo,
        profiles_repo=profiles_repo,
        auth_provider=auth_provider,
        storage=storage,
        timer_factory=timers,
    )


@pytest.fixture
def app(container):
    app = create_app(container, settings_module="config.testing")
    yield app
    container.sessions.stop_all()


def _photo_data_url() -> str:
    return "data:image/jpeg;base64," + base64.b64encode(jpeg_bytes()).decode("ascii")


def _signup_and_login(app, *, role: str, email: str, **extra):
    client = app.test_client()
    body = {"name": email.split("@")[0], "email": email, "password": "secret1", "role": role, **extra}
    resp = client.post("/api/signup", json=body)
    assert resp.status_code == 201, resp.get_json()
    resp = client.post("/api/login", json={"email": email, "password": "secret1"})
    assert resp.status_code == 200
    return client


@pytest.fixture
def faculty(app):
    return _signup_and_login(app, role="faculty", email="prof@example.com")


@pytest.fixture
def student_client(app):
    return _signup_and_login(
        app,
        role="student",
        email="asha@example.com",
        rollNo="21CS042",
        section="B",
        image=_photo_data_url(),
    )


@pytest.fixture
def course_id(faculty) -> str:
    resp = faculty.post("/api/courses", json={"name": "Networks"})
    assert resp.status_code == 201
    return resp.get_json()["course"]["id"]


def _start_session(faculty, course_id: str) -> str:
    resp = faculty.post(
        "/api/sessions/start",
        json={"courseId": course_id, "latitude": CLASSROOM.latitude, "longitude": CLASSROOM.longitude},
    )
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["payload"]


def test_requires_login(app):
    client = app.test_client()
    resp = client.get("/api/courses")
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_student_cannot_use_faculty_routes(student_client):
    resp = student_client.post("/api/courses", json={"name": "Hack"})
    assert resp.status_code == 403


def test_bad_login(app):
    resp = app.test_client().post("/api/login", json={"email": "nobody@example.com", "password": "secret1"})
    assert resp.status_code == 401
    assert resp.get_json()["kind"] == "AuthenticationError"


def test_signup_validation_error(app):
    resp = app.test_client().post(
        "/api/signup",
        json={"name": "Asha", "email": "asha@example.com", "password": "secret1", "role": "student"},
    )
    assert resp.status_code == 400
    assert resp.get_json()["stage"] == "failed"


def test_duplicate_signup_conflicts(app, faculty):
    resp = app.test_client().post(
        "/api/signup",
        json={"name": "Prof", "email": "prof@example.com", "password": "secret1", "role": "faculty"},
    )
    assert resp.status_code == 409


def test_me_returns_profile(student_client):
    data = student_client.get("/api/me").get_json()
    assert data["user"]["rollNo"] == "21CS042"
    assert data["user"]["faceImageUrl"].startswith("/media/profile_pictures/")


def test_logout_clears_session(student_client):
    assert student_client.post("/api/logout").status_code == 200
    assert student_client.get("/api/me").status_code == 401


def test_full_attendance_flow(faculty, student_client, course_id):
    payload = _start_session(faculty, course_id)

    resp = student_client.post(
        "/api/attendance/scan",
        json={"token": payload, "latitude": CLASSROOM.latitude, "longitude": CLASSROOM.longitude},
    )
    assert resp.status_code == 200, resp.get_json()
    assert resp.get_json()["message"] == "Attendance marked successfully!"

    live = faculty.get(f"/api/attendance/live/{course_id}").get_json()
    assert live["presentCount"] == 1
    assert live["students"][0]["status"] == "PRESENT"

    courses = student_client.get("/api/courses").get_json()["courses"]
    assert [c["id"] for c in courses] == [course_id]

    history = student_client.get("/api/attendance/me").get_json()["records"]
    assert len(history) == 1

    report = faculty.get(f"/api/reports/{course_id}").get_json()
    assert report["students"][0]["percentage"] == 100

    csv_resp = faculty.get(f"/api/reports/{course_id}/csv")
    assert csv_resp.mimetype == "text/csv"
    assert b"student_id,name,present_count,total_classes,percentage" in csv_resp.data

    mine = student_client.get("/api/reports/me").get_json()["courses"]
    assert mine[0]["percentage"] == 100


def test_scan_outside_geofence(faculty, student_client, course_id):
    payload = _start_session(faculty, course_id)

    resp = student_client.post(
        "/api/attendance/scan",
        json={"token": payload, "latitude": CLASSROOM.latitude + 0.01, "longitude": CLASSROOM.longitude},
    )

    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "OutOfRange"


def test_scan_without_location(faculty, student_client, course_id):
    payload = _start_session(faculty, course_id)

    resp = student_client.post("/api/attendance/scan", json={"token": payload, "locationError": "denied"})

    assert resp.get_json()["kind"] == "LocationUnavailable"


def test_start_session_without_location(faculty, course_id):
    resp = faculty.post("/api/sessions/start", json={"courseId": course_id})
    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "LocationUnavailable"


def test_restart_with_location_error_is_rejected(faculty, course_id):
    _start_session(faculty, course_id)
    assert faculty.post("/api/sessions/stop").status_code == 200

    resp = faculty.post("/api/sessions/start", json={"courseId": course_id, "locationError": "denied"})

    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "LocationUnavailable"
    assert faculty.get("/api/sessions/current").status_code == 404


def test_start_with_location_error_ends_running_session(faculty, course_id):
    _start_session(faculty, course_id)

    resp = faculty.post("/api/sessions/start", json={"courseId": course_id, "locationError": "denied"})

    assert resp.status_code == 400
    assert faculty.get("/api/sessions/current").status_code == 404


def test_session_lifecycle(faculty, course_id):
    assert faculty.get("/api/sessions/current").status_code == 404

    _start_session(faculty, course_id)
    current = faculty.get("/api/sessions/current").get_json()
    assert current["courseId"] == course_id
    assert current["qr"].startswith("data:image/png;base64,")

    png = faculty.get("/api/sessions/current.png")
    assert png.mimetype == "image/png"

    assert faculty.post("/api/sessions/stop").get_json()["stopped"] is True
    assert faculty.get("/api/sessions/current").status_code == 404


def test_session_halts_when_location_lost(faculty, course_id, timers):
    _start_session(faculty, course_id)

    faculty.post("/api/sessions/location", json={"locationError": "signal lost"})
    timers.last.fire()

    resp = faculty.get("/api/sessions/current")
    assert resp.status_code == 409
    assert resp.get_json()["kind"] == "LocationUnavailable"


def test_session_for_foreign_course_is_forbidden(app, course_id):
    other = _signup_and_login(app, role="faculty", email="other@example.com")
    resp = other.post("/api/sessions/start", json={"courseId": course_id, "latitude": 1.0, "longitude": 1.0})
    assert resp.status_code == 403


def test_timetable_endpoints(faculty, course_id):
    resp = faculty.post(
        "/api/timetable",
        json={"courseId": course_id, "day": "Tuesday", "startTime": "10:00", "endTime": "11:00"},
    )
    assert resp.status_code == 201

    bad = faculty.post(
        "/api/timetable",
        json={"courseId": course_id, "day": "Tuesday", "startTime": "12:00", "endTime": "11:00"},
    )
    assert bad.status_code == 400

    slots = faculty.get("/api/timetable").get_json()["slots"]
    assert [(s["day"], s["startTime"]) for s in slots] == [("Tuesday", "10:00")]


def test_student_sees_timetable_of_enrolled_courses(faculty, student_client, course_id):
    faculty.post(
        "/api/timetable",
        json={"courseId": course_id, "day": "Thursday", "startTime": "14:00", "endTime": "15:00"},
    )
    resp = student_client.get("/api/timetable")
    assert resp.status_code == 200
    assert resp.get_json()["slots"] == []

    payload = _start_session(faculty, course_id)
    student_client.post(
        "/api/attendance/scan",
        json={"token": payload, "latitude": CLASSROOM.latitude, "longitude": CLASSROOM.longitude},
    )

    slots = student_client.get("/api/timetable").get_json()["slots"]
    assert [(s["courseId"], s["day"], s["startTime"]) for s in slots] == [(course_id, "Thursday", "14:00")]


def test_manual_mark_needs_enrollment(faculty, student_client, course_id, profiles_repo):
    student_id = student_client.get("/api/me").get_json()["user"]["id"]

    resp = faculty.post("/api/attendance/mark", json={"studentId": student_id, "courseId": course_id})
    assert resp.status_code == 400

    payload = _start_session(faculty, course_id)
    student_client.post(
        "/api/attendance/scan",
        json={"token": payload, "latitude": CLASSROOM.latitude, "longitude": CLASSROOM.longitude},
    )
    resp = faculty.post("/api/attendance/mark", json={"studentId": student_id, "courseId": course_id})
    assert resp.status_code == 200
    assert resp.get_json()["record"]["status"] == "present"


def test_unknown_report_is_not_found(faculty):
    resp = faculty.get("/api/reports/missing")
    assert resp.status_code == 404
    assert resp.get_json()["kind"] == "NotFound"


def test_faculty_manages_students(app, faculty, student_client):
    student_id = student_client.get("/api/me").get_json()["user"]["id"]

    students = faculty.get("/api/students").get_json()["students"]
    assert [(s["id"], s["rollNo"]) for s in students] == [(student_id, "21CS042")]

    assert student_client.get("/api/students").status_code == 403
    assert student_client.delete(f"/api/students/{student_id}").status_code == 403

    assert faculty.delete(f"/api/students/{student_id}").get_json()["success"] is True
    assert faculty.get("/api/students").get_json()["students"] == []

    missing = faculty.delete(f"/api/students/{student_id}")
    assert missing.status_code == 404
    assert missing.get_json()["kind"] == "NotFound"

    resp = app.test_client().post("/api/login", json={"email": "asha@example.com", "password": "secret1"})
    assert resp.status_code == 404


def test_remember_me_uses_configured_lifetime(app, faculty):
    assert app.config["PERMANENT_SESSION_LIFETIME"] == timedelta(days=7)

    client = app.test_client()
    resp = client.post("/api/login", json={"email": "prof@example.com", "password": "secret1", "rememberMe": True})

    assert resp.status_code == 200
    assert "Expires=" in resp.headers["Set-Cookie"]
    assert app.permanent_session_lifetime == timedelta(days=7)
