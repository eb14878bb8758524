from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Weekday
from .model import Course, TimetableSlot


class CourseRepository(Protocol):
    def create(self, *, name: str, faculty_id: str) -> Course:
        raise NotImplementedError

    def get(self, course_id: str) -> Optional[Course]:
        raise NotImplementedError

    def list_for_faculty(self, faculty_id: str) -> Sequence[Course]:
        raise NotImplementedError

    def list_for_student(self, student_id: str) -> Sequence[Course]:
        raise NotImplementedError

    def add_student(self, course_id: str, student_id: str) -> None:
        """Set-union the student into the course; no effect if already enrolled."""

        raise NotImplementedError


class TimetableRepository(Protocol):
    def add_slot(self, *, course_id: str, day: Weekday, start_time: str, end_time: str) -> TimetableSlot:
        raise NotImplementedError

    def list_for_courses(self, course_ids: Sequence[str]) -> Sequence[TimetableSlot]:
        raise NotImplementedError
