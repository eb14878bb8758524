from __future__ import annotations

import io
import itertools
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

import pytest
from PIL import Image
from werkzeug.security import check_password_hash, generate_password_hash

from smart_attendance.attendance.model import AttendanceRecord
from smart_attendance.biometrics.matcher import FaceMatch
from smart_attendance.core.constants import MIN_PASSWORD_LENGTH
from smart_attendance.core.enums import Role, Weekday
from smart_attendance.core.exceptions import (
    AuthenticationError,
    BiometricFailure,
    DuplicateIdentity,
    StorageFailure,
    WeakCredential,
)
from smart_attendance.courses.model import Course, TimetableSlot
from smart_attendance.events.feed import ChangeEvent, ChangeFeed
from smart_attendance.geo.model import GeoPoint
from smart_attendance.users.model import Identity, UserProfile

CLASSROOM = GeoPoint(latitude=12.9716, longitude=77.5946)


class InMemoryAttendance:
    def __init__(self, feed: Optional[ChangeFeed] = None):
        self.records: dict[str, AttendanceRecord] = {}
        self.writes = 0
        self._feed = feed

    def upsert(self, record: AttendanceRecord) -> None:
        self.writes += 1
        self.records[record.record_id] = record
        if self._feed is not None:
            self._feed.publish(ChangeEvent("attendance", record.record_id, record.to_dict()))

    def get(self, record_id: str) -> Optional[AttendanceRecord]:
        return self.records.get(record_id)

    def list_for_course(self, course_id: str):
        return [r for r in self.records.values() if r.course_id == course_id]

    def list_for_course_and_date(self, course_id: str, day: date):
        return [r for r in self.records.values() if r.course_id == course_id and r.date == day]

    def list_for_student(self, student_id: str, *, course_id: Optional[str] = None):
        return [
            r
            for r in self.records.values()
            if r.student_id == student_id and (course_id is None or r.course_id == course_id)
        ]


class InMemoryCourses:
    def __init__(self):
        self.courses: dict[str, Course] = {}
        self.fail_add_student = 0
        self._ids = itertools.count(1)

    def create(self, *, name: str, faculty_id: str) -> Course:
        course = Course(course_id=f"c{next(self._ids)}", name=name, faculty_id=faculty_id)
        self.courses[course.course_id] = course
        return course

    def get(self, course_id: str) -> Optional[Course]:
        return self.courses.get(course_id)

    def list_for_faculty(self, faculty_id: str):
        return [c for c in self.courses.values() if c.faculty_id == faculty_id]

    def list_for_student(self, student_id: str):
        return [c for c in self.courses.values() if student_id in c.student_ids]

    def add_student(self, course_id: str, student_id: str) -> None:
        if self.fail_add_student:
            self.fail_add_student -= 1
            raise StorageFailure("enrollment write failed")
        course = self.courses[course_id]
        self.courses[course_id] = replace(course, student_ids=course.student_ids | {student_id})


class InMemoryTimetable:
    def __init__(self):
        self.slots: list[TimetableSlot] = []

    def add_slot(self, *, course_id: str, day: Weekday, start_time: str, end_time: str) -> TimetableSlot:
        slot = TimetableSlot(
            slot_id=f"s{len(self.slots) + 1}",
            course_id=course_id,
            day=day,
            start_time=start_time,
            end_time=end_time,
        )
        self.slots.append(slot)
        return slot

    def list_for_courses(self, course_ids):
        return [s for s in self.slots if s.course_id in set(course_ids)]


class InMemoryProfiles:
    def __init__(self):
        self.profiles: dict[str, UserProfile] = {}
        self.fail_save = False
        self.fail_update_face = False

    def get(self, uid: str) -> Optional[UserProfile]:
        return self.profiles.get(uid)

    def save(self, profile: UserProfile) -> None:
        if self.fail_save:
            raise StorageFailure("profile write failed")
        self.profiles[profile.uid] = profile

    def update_face_image(self, uid: str, face_image_url: str) -> None:
        if self.fail_update_face:
            raise StorageFailure("profile update failed")
        self.profiles[uid] = self.profiles[uid].with_face_image(face_image_url)

    def delete(self, uid: str) -> bool:
        return self.profiles.pop(uid, None) is not None

    def list_by_ids(self, uids):
        return [self.profiles[u] for u in uids if u in self.profiles]

    def list_by_role(self, role):
        return sorted((p for p in self.profiles.values() if p.role == role), key=lambda p: p.name)


class InMemoryAuth:
    def __init__(self):
        self.identities: dict[str, tuple[Identity, str]] = {}
        self.signed_out: list[str] = []
        self._ids = itertools.count(1)

    def create_identity(self, email: str, password: str) -> Identity:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise WeakCredential("Password should be at least 6 characters.")
        email = email.strip().lower()
        if any(i.email == email for i, _ in self.identities.values()):
            raise DuplicateIdentity("This email is already registered.")
        identity = Identity(uid=f"u{next(self._ids)}", email=email)
        self.identities[identity.uid] = (identity, generate_password_hash(password))
        return identity

    def delete_identity(self, uid: str) -> None:
        self.identities.pop(uid, None)

    def sign_in(self, email: str, password: str) -> Identity:
        for identity, pw_hash in self.identities.values():
            if identity.email == email.strip().lower() and check_password_hash(pw_hash, password):
                return identity
        raise AuthenticationError("Invalid email or password.")

    def sign_out(self, uid: str) -> None:
        self.signed_out.append(uid)


class InMemoryStorage:
    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.fail_put = False

    def put(self, key: str, data: bytes, *, content_type: str) -> str:
        if self.fail_put:
            raise StorageFailure("upload failed")
        self.objects[key] = data
        return f"/media/{key}"

    def get(self, key: str) -> bytes:
        return self.objects[key]

    def delete(self, key: str) -> bool:
        return self.objects.pop(key, None) is not None


class FakeFaceMatcher:
    """Matches when the probe bytes equal the registered bytes."""

    def __init__(self):
        self.references: dict[str, bytes] = {}
        self.reject_registration = False

    def register(self, uid: str, image: bytes) -> None:
        if self.reject_registration:
            raise BiometricFailure("No face detected in the image")
        self.references[uid] = image

    def unregister(self, uid: str) -> None:
        self.references.pop(uid, None)

    def is_registered(self, uid: str) -> bool:
        return uid in self.references

    def match(self, uid: str, probe: bytes) -> FaceMatch:
        matched = self.references.get(uid) == probe
        return FaceMatch(matched=matched, confidence=1.0 if matched else 0.0, identity=uid if matched else None)


class ManualTimer:
    """Stands in for threading.Timer; the test fires it explicitly."""

    def __init__(self, interval_s, fn):
        self.interval_s = interval_s
        self.fn = fn
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.fn()


class TimerRecorder:
    def __init__(self):
        self.timers: list[ManualTimer] = []

    def __call__(self, interval_s, fn) -> ManualTimer:
        timer = ManualTimer(interval_s, fn)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> ManualTimer:
        return self.timers[-1]


class FakeClock:
    def __init__(self, now_ms: int):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


def jpeg_bytes(size=(640, 480), color=(200, 120, 80)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="JPEG")
    return buf.getvalue()


def student(uid: str, name: str) -> UserProfile:
    return UserProfile(uid=uid, name=name, email=f"{uid}@example.com", role=Role.STUDENT, roll_no=uid, section="A")


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 4, 9, 0, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(int(fixed_now.timestamp() * 1000))


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
def attendance_repo(feed) -> InMemoryAttendance:
    return InMemoryAttendance(feed)


@pytest.fixture
def courses_repo() -> InMemoryCourses:
    return InMemoryCourses()


@pytest.fixture
def timetable_repo() -> InMemoryTimetable:
    return InMemoryTimetable()


@pytest.fixture
def profiles_repo() -> InMemoryProfiles:
    return InMemoryProfiles()


@pytest.fixture
def auth_provider() -> InMemoryAuth:
    return InMemoryAuth()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def faces() -> FakeFaceMatcher:
    return FakeFaceMatcher()


@pytest.fixture
def timers() -> TimerRecorder:
    return TimerRecorder()
