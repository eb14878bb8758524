from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from ..attendance.model import AttendanceRecord
from ..core.enums import AttendanceStatus
from ..users.model import UserProfile


@dataclass(frozen=True)
class StudentAttendanceSummary:
    student_id: str
    name: str
    present_count: int
    total_classes: int
    percentage: int

    def to_dict(self) -> dict:
        return {
            "studentId": self.student_id,
            "name": self.name,
            "presentCount": self.present_count,
            "totalClasses": self.total_classes,
            "percentage": self.percentage,
        }


def attendance_percentage(present_count: int, total_classes: int) -> int:
    """round(100 * present / max(total, 1)), halves rounded up."""
    total = max(total_classes, 1)
    return (200 * present_count + total) // (2 * total)


def aggregate_course_report(
    records: Iterable[AttendanceRecord],
    students: Sequence[UserProfile],
) -> list[StudentAttendanceSummary]:
    """Per-student attendance for one course.

    A class counts once per distinct calendar date that has any record.
    """
    records = list(records)
    total_classes = len({r.date for r in records})

    present: dict[str, int] = {}
    for r in records:
        if r.status == AttendanceStatus.PRESENT:
            present[r.student_id] = present.get(r.student_id, 0) + 1

    out = []
    for s in students:
        count = present.get(s.uid, 0)
        out.append(
            StudentAttendanceSummary(
                student_id=s.uid,
                name=s.name,
                present_count=count,
                total_classes=total_classes,
                percentage=attendance_percentage(count, total_classes),
            )
        )
    return out
