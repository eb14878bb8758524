from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    STUDENT = "student"
    FACULTY = "faculty"


class AttendanceStatus(str, Enum):
    """Attendance status stored with each record."""

    PRESENT = "present"
    ABSENT = "absent"


class SignupStage(str, Enum):
    """Progress of an account creation run."""

    IDLE = "idle"
    CREATING_IDENTITY = "creating_identity"
    UPLOADING_BIOMETRIC = "uploading_biometric"
    SAVING_PROFILE = "saving_profile"
    COMPLETE = "complete"
    FAILED = "failed"


class Weekday(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"

    @property
    def order(self) -> int:
        return list(Weekday).index(self)
