from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    """Attendance collection keyed by the composite record id."""

    def upsert(self, record: AttendanceRecord) -> None:
        """Write the record under its id, overwriting any previous version."""

        raise NotImplementedError

    def get(self, record_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_course(self, course_id: str) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_course_and_date(self, course_id: str, day: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_student(self, student_id: str, *, course_id: Optional[str] = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
