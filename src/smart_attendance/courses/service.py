from __future__ import annotations

from typing import Sequence

from ..common.datetime_utils import parse_hhmm
from ..common.validators import require_non_empty
from ..core.enums import Weekday
from ..core.exceptions import AuthorizationError, NotFound, ValidationError
from .model import Course, TimetableSlot
from .repository import CourseRepository, TimetableRepository


class CourseService:
    """Use case: faculty manage courses and weekly timetable slots."""

    def __init__(self, courses: CourseRepository, timetable: TimetableRepository):
        self._courses = courses
        self._timetable = timetable

    def create_course(self, *, faculty_id: str, name: str) -> Course:
        name = require_non_empty(name, "Course name")
        return self._courses.create(name=name, faculty_id=faculty_id)

    def get_owned(self, *, faculty_id: str, course_id: str) -> Course:
        course = self._courses.get(course_id)
        if not course:
            raise NotFound("Course not found")
        if course.faculty_id != faculty_id:
            raise AuthorizationError("You do not teach this course")
        return course

    def list_for_faculty(self, faculty_id: str) -> Sequence[Course]:
        return self._courses.list_for_faculty(faculty_id)

    def list_for_student(self, student_id: str) -> Sequence[Course]:
        return self._courses.list_for_student(student_id)

    def add_timetable_slot(
        self,
        *,
        faculty_id: str,
        course_id: str,
        day: str,
        start_time: str,
        end_time: str,
    ) -> TimetableSlot:
        if not course_id or not day or not start_time or not end_time:
            raise ValidationError("All fields are required.")

        try:
            weekday = Weekday(day)
        except ValueError:
            raise ValidationError(f"Unknown day: {day}")

        try:
            start = parse_hhmm(start_time)
            end = parse_hhmm(end_time)
        except ValueError:
            raise ValidationError("Times must use HH:MM format.")
        if start >= end:
            raise ValidationError("End time must be after start time.")

        self.get_owned(faculty_id=faculty_id, course_id=course_id)
        return self._timetable.add_slot(
            course_id=course_id,
            day=weekday,
            start_time=start.strftime("%H:%M"),
            end_time=end.strftime("%H:%M"),
        )

    def list_timetable(self, faculty_id: str) -> Sequence[TimetableSlot]:
        return self._sorted_slots(c.course_id for c in self._courses.list_for_faculty(faculty_id))

    def list_student_timetable(self, student_id: str) -> Sequence[TimetableSlot]:
        """Slots of every course the student is enrolled in."""
        return self._sorted_slots(c.course_id for c in self._courses.list_for_student(student_id))

    def _sorted_slots(self, course_ids) -> Sequence[TimetableSlot]:
        slots = list(self._timetable.list_for_courses(list(course_ids)))
        slots.sort(key=lambda s: (s.day.order, s.start_time))
        return slots
