from __future__ import annotations

from datetime import date

import pytest

from smart_attendance.attendance.model import AttendanceRecord
from smart_attendance.core.enums import AttendanceStatus
from smart_attendance.core.exceptions import AuthorizationError
from smart_attendance.courses.model import Course
from smart_attendance.reports.aggregator import aggregate_course_report, attendance_percentage
from smart_attendance.reports.service import ReportService

from conftest import student


def _record(student_id: str, day: int, status=AttendanceStatus.PRESENT) -> AttendanceRecord:
    return AttendanceRecord.for_day(
        student_id=student_id,
        course_id="c1",
        day=date(2024, 3, day),
        status=status,
        marked_by="f1",
    )


@pytest.mark.parametrize(
    "present, total, expected",
    [
        (4, 5, 80),
        (0, 0, 0),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),
        (5, 5, 100),
    ],
)
def test_percentage_rounds_half_up(present, total, expected):
    assert attendance_percentage(present, total) == expected


def test_classes_are_distinct_dates_with_any_record():
    records = [_record("s1", d) for d in (1, 2, 3, 4)] + [_record("s2", d) for d in (1, 2, 5)]
    students = [student("s1", "A"), student("s2", "B")]

    s1, s2 = aggregate_course_report(records, students)

    assert (s1.present_count, s1.total_classes, s1.percentage) == (4, 5, 80)
    assert (s2.present_count, s2.total_classes, s2.percentage) == (3, 5, 60)


def test_absent_records_count_as_class_but_not_presence():
    records = [_record("s1", 1), _record("s1", 2, status=AttendanceStatus.ABSENT)]
    [s1] = aggregate_course_report(records, [student("s1", "A")])
    assert (s1.present_count, s1.total_classes, s1.percentage) == (1, 2, 50)


def test_course_without_records_reports_zero():
    [s1] = aggregate_course_report([], [student("s1", "A")])
    assert (s1.present_count, s1.total_classes, s1.percentage) == (0, 0, 0)


@pytest.fixture
def service(attendance_repo, courses_repo, profiles_repo) -> ReportService:
    courses_repo.courses["c1"] = Course(course_id="c1", name="Networks", faculty_id="f1", student_ids=frozenset({"s1", "s2"}))
    profiles_repo.profiles["s1"] = student("s1", "Zed")
    profiles_repo.profiles["s2"] = student("s2", "Amy")
    return ReportService(attendance_repo, courses_repo, profiles_repo)


def test_course_report_for_owner(service, attendance_repo):
    for d in (1, 2, 3, 4, 5):
        attendance_repo.upsert(_record("s2", d))
    for d in (1, 2, 3, 4):
        attendance_repo.upsert(_record("s1", d))

    report = service.course_report(course_id="c1", faculty_id="f1")

    assert [(r.name, r.percentage) for r in report.rows] == [("Amy", 100), ("Zed", 80)]
    assert report.to_dict()["courseName"] == "Networks"


def test_course_report_requires_owner(service):
    with pytest.raises(AuthorizationError):
        service.course_report(course_id="c1", faculty_id="f2")


def test_csv_export(service, attendance_repo):
    attendance_repo.upsert(_record("s1", 1))

    body = service.to_csv(service.course_report(course_id="c1", faculty_id="f1"))

    assert body.startswith(b"\xef\xbb\xbf")
    lines = body.decode("utf-8-sig").splitlines()
    assert lines[0] == "student_id,name,present_count,total_classes,percentage"
    assert lines[1:] == ["s2,Amy,0,1,0", "s1,Zed,1,1,100"]


def test_student_summaries(service, attendance_repo):
    attendance_repo.upsert(_record("s1", 1))
    attendance_repo.upsert(_record("s2", 2))

    [summary] = service.student_summaries("s1")

    assert summary.course.course_id == "c1"
    assert summary.summary.percentage == 50


def test_course_with_no_students_reports_empty(courses_repo, attendance_repo, profiles_repo):
    courses_repo.courses["c2"] = Course(course_id="c2", name="Empty", faculty_id="f1")
    service = ReportService(attendance_repo, courses_repo, profiles_repo)

    report = service.course_report(course_id="c2", faculty_id="f1")

    assert report.rows == []
    assert aggregate_course_report([], []) == []
