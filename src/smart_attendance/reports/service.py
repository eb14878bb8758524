from __future__ import annotations

import csv
import io
from dataclasses import dataclass

from ..attendance.repository import AttendanceRepository
from ..core.exceptions import AuthorizationError, NotFound
from ..courses.model import Course
from ..courses.repository import CourseRepository
from ..users.repository import ProfileRepository
from .aggregator import StudentAttendanceSummary, aggregate_course_report

CSV_FIELDS = ["student_id", "name", "present_count", "total_classes", "percentage"]


@dataclass(frozen=True)
class CourseReport:
    course: Course
    rows: list[StudentAttendanceSummary]

    def to_dict(self) -> dict:
        return {
            "courseId": self.course.course_id,
            "courseName": self.course.name,
            "students": [r.to_dict() for r in self.rows],
        }


@dataclass(frozen=True)
class StudentCourseSummary:
    course: Course
    summary: StudentAttendanceSummary

    def to_dict(self) -> dict:
        return {"courseId": self.course.course_id, "courseName": self.course.name, **self.summary.to_dict()}


class ReportService:
    def __init__(self, attendance: AttendanceRepository, courses: CourseRepository, profiles: ProfileRepository):
        self._attendance = attendance
        self._courses = courses
        self._profiles = profiles

    def course_report(self, *, course_id: str, faculty_id: str) -> CourseReport:
        course = self._courses.get(course_id)
        if not course:
            raise NotFound("Course not found")
        if course.faculty_id != faculty_id:
            raise AuthorizationError("You do not teach this course")

        students = sorted(self._profiles.list_by_ids(sorted(course.student_ids)), key=lambda p: p.name.lower())
        rows = aggregate_course_report(self._attendance.list_for_course(course_id), students)
        return CourseReport(course=course, rows=rows)

    def student_summaries(self, student_id: str) -> list[StudentCourseSummary]:
        """A student's own percentage in every course they have scanned into."""
        profile = self._profiles.get(student_id)
        if not profile:
            raise NotFound("Your user data could not be found.")

        out = []
        for course in self._courses.list_for_student(student_id):
            [summary] = aggregate_course_report(self._attendance.list_for_course(course.course_id), [profile])
            out.append(StudentCourseSummary(course=course, summary=summary))
        return out

    @staticmethod
    def to_csv(report: CourseReport) -> bytes:
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for r in report.rows:
            writer.writerow(
                {
                    "student_id": r.student_id,
                    "name": r.name,
                    "present_count": r.present_count,
                    "total_classes": r.total_classes,
                    "percentage": r.percentage,
                }
            )
        return out.getvalue().encode("utf-8-sig")
