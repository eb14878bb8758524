from __future__ import annotations

from dataclasses import dataclass, field

from ..core.enums import Weekday


@dataclass(frozen=True)
class Course:
    """Domain entity: a course owned by one faculty member.

    ``student_ids`` only grows, through successful check-ins.
    """

    course_id: str
    name: str
    faculty_id: str
    student_ids: frozenset[str] = field(default_factory=frozenset)

    def to_dict(self) -> dict:
        return {
            "id": self.course_id,
            "name": self.name,
            "facultyId": self.faculty_id,
            "studentIds": sorted(self.student_ids),
        }


@dataclass(frozen=True)
class TimetableSlot:
    slot_id: str
    course_id: str
    day: Weekday
    start_time: str
    end_time: str

    def to_dict(self) -> dict:
        return {
            "id": self.slot_id,
            "courseId": self.course_id,
            "day": self.day.value,
            "startTime": self.start_time,
            "endTime": self.end_time,
        }
