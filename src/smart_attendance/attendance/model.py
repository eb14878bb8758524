from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..core.enums import AttendanceStatus


def attendance_id(student_id: str, course_id: str, day: date) -> str:
    """Deterministic write key: one record per (student, course, day)."""
    return f"{student_id}_{course_id}_{day.isoformat()}"


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's attendance for one course on one day."""

    record_id: str
    student_id: str
    course_id: str
    date: date
    status: AttendanceStatus
    marked_by: str

    @classmethod
    def for_day(
        cls,
        *,
        student_id: str,
        course_id: str,
        day: date,
        status: AttendanceStatus,
        marked_by: str,
    ) -> "AttendanceRecord":
        return cls(
            record_id=attendance_id(student_id, course_id, day),
            student_id=student_id,
            course_id=course_id,
            date=day,
            status=status,
            marked_by=marked_by,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "studentId": self.student_id,
            "courseId": self.course_id,
            "date": self.date.isoformat(),
            "status": self.status.value,
            "markedBy": self.marked_by,
        }
