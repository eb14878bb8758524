from __future__ import annotations

from datetime import date

import pytest

from smart_attendance.attendance.model import AttendanceRecord
from smart_attendance.attendance.service import AttendanceService
from smart_attendance.core.enums import AttendanceStatus
from smart_attendance.core.exceptions import AuthorizationError, NotFound, ValidationError
from smart_attendance.courses.model import Course

from conftest import student

DAY = date(2024, 3, 4)


@pytest.fixture
def service(attendance_repo, courses_repo, profiles_repo, feed) -> AttendanceService:
    courses_repo.courses["c1"] = Course(
        course_id="c1",
        name="Networks",
        faculty_id="f1",
        student_ids=frozenset({"s1", "s2"}),
    )
    profiles_repo.profiles["s1"] = student("s1", "Bob")
    profiles_repo.profiles["s2"] = student("s2", "alice")
    return AttendanceService(attendance_repo, courses_repo, profiles_repo, feed=feed)


def _present(student_id: str, day: date = DAY, course_id: str = "c1") -> AttendanceRecord:
    return AttendanceRecord.for_day(
        student_id=student_id,
        course_id=course_id,
        day=day,
        status=AttendanceStatus.PRESENT,
        marked_by="f1",
    )


def test_live_view_lists_enrolled_students_by_name(service, attendance_repo):
    attendance_repo.upsert(_present("s1"))

    view = service.live_attendance(course_id="c1", faculty_id="f1", day=DAY)

    assert [r.name for r in view.rows] == ["alice", "Bob"]
    assert [r.present for r in view.rows] == [False, True]
    assert view.present_count == 1
    assert view.to_dict()["students"][1]["status"] == "PRESENT"


def test_live_view_ignores_other_days(service, attendance_repo):
    attendance_repo.upsert(_present("s1", day=date(2024, 3, 1)))
    assert service.live_attendance(course_id="c1", faculty_id="f1", day=DAY).present_count == 0


def test_live_view_requires_owner(service):
    with pytest.raises(AuthorizationError):
        service.live_attendance(course_id="c1", faculty_id="f2", day=DAY)
    with pytest.raises(NotFound):
        service.live_attendance(course_id="nope", faculty_id="f1", day=DAY)


def test_subscription_pushes_new_view_until_cancelled(service, attendance_repo, feed):
    views = []
    sub = service.subscribe_live(course_id="c1", faculty_id="f1", day=DAY, on_change=views.append)

    attendance_repo.upsert(_present("s2"))
    attendance_repo.upsert(_present("s1", day=date(2024, 3, 5)))
    attendance_repo.upsert(_present("s1", course_id="c9"))

    assert len(views) == 1
    assert views[0].present_count == 1

    sub.cancel()
    attendance_repo.upsert(_present("s1"))
    assert len(views) == 1
    assert feed.listener_count() == 0


def test_manual_mark_uses_same_key_as_scan(service, attendance_repo):
    record = service.mark_present(student_id="s1", course_id="c1", faculty_id="f1", day=DAY)

    assert record.record_id == f"s1_c1_{DAY.isoformat()}"
    assert attendance_repo.get(record.record_id) == record


def test_manual_mark_rejects_unenrolled_student(service):
    with pytest.raises(ValidationError):
        service.mark_present(student_id="s9", course_id="c1", faculty_id="f1", day=DAY)


def test_history_is_newest_first(service, attendance_repo):
    for d in (1, 4, 2):
        attendance_repo.upsert(_present("s1", day=date(2024, 3, d)))

    history = service.history_for_student("s1", limit=2)

    assert [r.date.day for r in history] == [4, 2]
