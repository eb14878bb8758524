from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .attendance.verifier import CodeVerifier
from .biometrics.matcher import FaceMatcher
from .biometrics.storage import LocalObjectStorage, ObjectStorage
from .common.datetime_utils import now_ms
from .core import constants
from .courses.mysql_course_repository import MySQLCourseRepository, MySQLTimetableRepository
from .courses.repository import CourseRepository, TimetableRepository
from .courses.service import CourseService
from .database.connection import DBConfig, DatabaseConnection
from .events.feed import ChangeFeed
from .qrcodes.generator import SessionRegistry, TimerFactory, daemon_timer
from .reports.service import ReportService
from .users.mysql_auth_provider import MySQLAuthProvider
from .users.mysql_profile_repository import MySQLProfileRepository
from .users.repository import AuthProvider, ProfileRepository
from .users.service import AuthService, StudentDirectoryService
from .users.signup import SignupOrchestrator


@dataclass(frozen=True)
class Container:
    feed: ChangeFeed

    attendance_repo: AttendanceRepository
    courses_repo: CourseRepository
    timetable_repo: TimetableRepository
    profiles_repo: ProfileRepository
    auth_provider: AuthProvider
    storage: Optional[ObjectStorage]
    faces: Optional[FaceMatcher]

    auth_service: AuthService
    students: StudentDirectoryService
    signup: SignupOrchestrator
    course_service: CourseService
    attendance_service: AttendanceService
    report_service: ReportService
    verifier: CodeVerifier
    sessions: SessionRegistry

    conn: Optional[DatabaseConnection] = field(default=None)


def _opt(options: Mapping[str, Any], name: str) -> Any:
    return options.get(name, getattr(constants, name, None))


def wire_container(
    *,
    feed: ChangeFeed,
    attendance_repo: AttendanceRepository,
    courses_repo: CourseRepository,
    timetable_repo: TimetableRepository,
    profiles_repo: ProfileRepository,
    auth_provider: AuthProvider,
    storage: Optional[ObjectStorage] = None,
    faces: Optional[FaceMatcher] = None,
    options: Optional[Mapping[str, Any]] = None,
    clock: Callable[[], int] = now_ms,
    timer_factory: TimerFactory = daemon_timer,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build services on top of already-constructed repositories."""
    options = options or {}

    verifier = CodeVerifier(
        attendance_repo,
        courses_repo,
        clock=clock,
        freshness_window_ms=int(_opt(options, "FRESHNESS_WINDOW_MS")),
        geofence_radius_m=float(_opt(options, "GEOFENCE_RADIUS_M")),
        face_matcher=faces,
        require_face=bool(options.get("REQUIRE_FACE_MATCH", False)) and faces is not None,
    )
    sessions = SessionRegistry(
        interval_s=float(_opt(options, "QR_REFRESH_SECONDS")),
        clock=clock,
        timer_factory=timer_factory,
    )
    signup = SignupOrchestrator(
        auth_provider,
        profiles_repo,
        storage=storage,
        faces=faces,
        require_student_photo=bool(options.get("REQUIRE_STUDENT_PHOTO", True)),
        max_image_bytes=int(_opt(options, "MAX_IMAGE_BYTES")),
    )

    return Container(
        feed=feed,
        attendance_repo=attendance_repo,
        courses_repo=courses_repo,
        timetable_repo=timetable_repo,
        profiles_repo=profiles_repo,
        auth_provider=auth_provider,
        storage=storage,
        faces=faces,
        auth_service=AuthService(auth_provider, profiles_repo),
        students=StudentDirectoryService(profiles_repo),
        signup=signup,
        course_service=CourseService(courses_repo, timetable_repo),
        attendance_service=AttendanceService(attendance_repo, courses_repo, profiles_repo, feed=feed),
        report_service=ReportService(attendance_repo, courses_repo, profiles_repo),
        verifier=verifier,
        sessions=sessions,
        conn=conn,
    )


def build_face_matcher(options: Mapping[str, Any], storage: Optional[ObjectStorage]) -> Optional[FaceMatcher]:
    backend = str(options.get("FACE_MATCHER") or "none").lower()
    if backend == "none":
        return None
    if backend == "face_recognition":
        # Optional heavy dependency; only imported when configured.
        from .biometrics.face_recognition_matcher import FaceRecognitionMatcher

        return FaceRecognitionMatcher(storage, tolerance=float(_opt(options, "FACE_MATCH_TOLERANCE")))
    raise ValueError(f"Unknown FACE_MATCHER backend: {backend}")


def build_container(*, db_config: dict, options: Optional[Mapping[str, Any]] = None) -> Container:
    options = options or {}
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    feed = ChangeFeed()

    storage = LocalObjectStorage(
        options.get("MEDIA_ROOT", "media"),
        base_url=str(options.get("MEDIA_URL", "/media/")),
    )

    return wire_container(
        feed=feed,
        attendance_repo=MySQLAttendanceRepository(conn, feed),
        courses_repo=MySQLCourseRepository(conn, feed),
        timetable_repo=MySQLTimetableRepository(conn),
        profiles_repo=MySQLProfileRepository(conn),
        auth_provider=MySQLAuthProvider(conn),
        storage=storage,
        faces=build_face_matcher(options, storage),
        options=options,
        conn=conn,
    )
