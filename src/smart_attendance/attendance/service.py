from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Sequence

from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceStatus
from ..core.exceptions import AuthorizationError, NotFound, ValidationError
from ..courses.repository import CourseRepository
from ..events.feed import ChangeEvent, ChangeFeed, Subscription
from ..users.repository import ProfileRepository
from .model import AttendanceRecord
from .repository import AttendanceRepository


@dataclass(frozen=True)
class LiveStudentRow:
    student_id: str
    name: str
    face_image_url: Optional[str]
    present: bool


@dataclass(frozen=True)
class LiveAttendanceView:
    course_id: str
    day: date
    rows: list[LiveStudentRow]

    @property
    def present_count(self) -> int:
        return sum(1 for r in self.rows if r.present)

    def to_dict(self) -> dict:
        return {
            "courseId": self.course_id,
            "date": self.day.isoformat(),
            "presentCount": self.present_count,
            "totalStudents": len(self.rows),
            "students": [
                {
                    "id": r.student_id,
                    "name": r.name,
                    "faceImageUrl": r.face_image_url,
                    "status": "PRESENT" if r.present else "ABSENT",
                }
                for r in self.rows
            ],
        }


class AttendanceService:
    """Faculty-side attendance operations that sit next to the QR verifier."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        courses: CourseRepository,
        profiles: ProfileRepository,
        *,
        feed: Optional[ChangeFeed] = None,
    ):
        self._attendance = attendance
        self._courses = courses
        self._profiles = profiles
        self._feed = feed

    def _owned_course(self, course_id: str, faculty_id: str):
        course = self._courses.get(course_id)
        if not course:
            raise NotFound("Course not found")
        if course.faculty_id != faculty_id:
            raise AuthorizationError("You do not teach this course")
        return course

    def mark_present(self, *, student_id: str, course_id: str, faculty_id: str, day: date) -> AttendanceRecord:
        """Manual override; writes under the same composite key as a scan."""
        course = self._owned_course(course_id, faculty_id)
        if student_id not in course.student_ids:
            raise ValidationError("Student is not enrolled in this course")

        record = AttendanceRecord.for_day(
            student_id=student_id,
            course_id=course_id,
            day=day,
            status=AttendanceStatus.PRESENT,
            marked_by=faculty_id,
        )
        self._attendance.upsert(record)
        return record

    def live_attendance(self, *, course_id: str, faculty_id: str, day: date) -> LiveAttendanceView:
        course = self._owned_course(course_id, faculty_id)
        present_ids = {
            r.student_id
            for r in self._attendance.list_for_course_and_date(course_id, day)
            if r.status == AttendanceStatus.PRESENT
        }
        students = sorted(self._profiles.list_by_ids(sorted(course.student_ids)), key=lambda p: p.name.lower())
        rows = [
            LiveStudentRow(
                student_id=p.uid,
                name=p.name,
                face_image_url=p.face_image_url,
                present=p.uid in present_ids,
            )
            for p in students
        ]
        return LiveAttendanceView(course_id=course_id, day=day, rows=rows)

    def subscribe_live(
        self,
        *,
        course_id: str,
        faculty_id: str,
        day: date,
        on_change: Callable[[LiveAttendanceView], None],
    ) -> Subscription:
        """Re-render the live view whenever today's records for the course change.

        The caller owns the returned handle and must cancel it.
        """
        if self._feed is None:
            raise ValidationError("Live updates are not enabled")
        self._owned_course(course_id, faculty_id)

        def _matches(event: ChangeEvent) -> bool:
            return event.data.get("courseId") == course_id and event.data.get("date") == day.isoformat()

        def _refresh(_event: ChangeEvent) -> None:
            on_change(self.live_attendance(course_id=course_id, faculty_id=faculty_id, day=day))

        return self._feed.subscribe("attendance", _refresh, where=_matches)

    def history_for_student(
        self,
        student_id: str,
        *,
        course_id: Optional[str] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[AttendanceRecord]:
        records = sorted(
            self._attendance.list_for_student(student_id, course_id=course_id),
            key=lambda r: r.date,
            reverse=True,
        )
        return records[:limit]
