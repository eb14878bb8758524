from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Union

from ..common.datetime_utils import local_date_from_ms, now_ms
from ..core.constants import FRESHNESS_WINDOW_MS, GEOFENCE_RADIUS_M
from ..core.enums import AttendanceStatus
from ..core.exceptions import (
    BiometricFailure,
    DomainError,
    ExpiredToken,
    LocationUnavailable,
    NotFound,
    OutOfRange,
    StorageFailure,
)
from ..biometrics.matcher import FaceMatcher
from ..courses.repository import CourseRepository
from ..geo.distance import haversine_m, within_radius
from ..geo.model import GeoPoint
from ..geo.provider import LocationProvider
from ..qrcodes.model import SessionToken, decode_token
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one scan attempt."""

    success: bool
    message: str
    kind: Optional[str] = None
    distance_m: Optional[float] = None
    record: Optional[AttendanceRecord] = None

    def to_dict(self) -> dict:
        data = {"success": self.success, "message": self.message}
        if self.kind:
            data["kind"] = self.kind
        if self.distance_m is not None:
            data["distanceM"] = round(self.distance_m, 2)
        if self.record is not None:
            data["record"] = self.record.to_dict()
        return data


class CodeVerifier:
    """Accepts or rejects a scanned session token and records attendance.

    Steps run strictly in order and the first failure ends the attempt:

    1. freshness (``now - issued_at <= freshness_window_ms``)
    2. student location
    3. geofence (haversine distance ``<= geofence_radius_m``, inclusive)
    4. optional face match, when a matcher is configured
    5. upsert the attendance record under its (student, course, day) key
    6. set-union the student into the course

    Steps 5 and 6 are each idempotent, so re-scanning after a failure
    between them repairs the enrollment.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        courses: CourseRepository,
        *,
        clock: Callable[[], int] = now_ms,
        freshness_window_ms: int = FRESHNESS_WINDOW_MS,
        geofence_radius_m: float = GEOFENCE_RADIUS_M,
        face_matcher: Optional[FaceMatcher] = None,
        require_face: bool = False,
    ):
        self._attendance = attendance
        self._courses = courses
        self._clock = clock
        self._freshness_window_ms = int(freshness_window_ms)
        self._radius_m = float(geofence_radius_m)
        self._faces = face_matcher
        self._require_face = bool(require_face and face_matcher is not None)

    def verify(
        self,
        token: Union[SessionToken, str],
        student_id: str,
        locator: LocationProvider,
        *,
        probe_image: Optional[bytes] = None,
    ) -> VerificationResult:
        try:
            if isinstance(token, str):
                token = decode_token(token)

            now = int(self._clock())
            self.check_freshness(token, now)
            position = self._locate(locator)
            distance = self.check_geofence(token, position)
            self._check_face(student_id, probe_image)
            if self._courses.get(token.course_id) is None:
                raise NotFound("Course not found")

            record = self.commit(
                student_id=student_id,
                course_id=token.course_id,
                faculty_id=token.faculty_id,
                day=local_date_from_ms(now),
            )
            self.enroll(token.course_id, student_id)
        except OutOfRange as e:
            logger.info("Scan rejected for %s: %s (%.1fm)", student_id, e.kind, e.distance_m)
            return VerificationResult(success=False, message=str(e), kind=e.kind, distance_m=e.distance_m)
        except DomainError as e:
            logger.info("Scan rejected for %s: %s", student_id, e.kind)
            return VerificationResult(success=False, message=str(e), kind=e.kind)
        except Exception as e:
            logger.exception("Scan failed for %s", student_id)
            return VerificationResult(success=False, message=f"Verification failed: {e}", kind=StorageFailure.kind)

        logger.info("Attendance marked: %s", record.record_id)
        return VerificationResult(
            success=True,
            message="Attendance marked successfully!",
            distance_m=distance,
            record=record,
        )

    def check_freshness(self, token: SessionToken, now: int) -> None:
        if token.age_ms(now) > self._freshness_window_ms:
            raise ExpiredToken("Expired QR Code. Please scan the new one.")

    def check_geofence(self, token: SessionToken, position: GeoPoint) -> float:
        distance = haversine_m(position, token.location)
        if not within_radius(distance, self._radius_m):
            raise OutOfRange(
                f"You are {round(distance)}m away. Must be within {self._radius_m:g}m to mark attendance.",
                distance_m=distance,
                radius_m=self._radius_m,
            )
        return distance

    def commit(self, *, student_id: str, course_id: str, faculty_id: str, day: date) -> AttendanceRecord:
        record = AttendanceRecord.for_day(
            student_id=student_id,
            course_id=course_id,
            day=day,
            status=AttendanceStatus.PRESENT,
            marked_by=faculty_id,
        )
        self._attendance.upsert(record)
        return record

    def enroll(self, course_id: str, student_id: str) -> None:
        try:
            self._courses.add_student(course_id, student_id)
        except StorageFailure:
            logger.warning("Enrollment write failed for %s in %s; retrying once", student_id, course_id)
            self._courses.add_student(course_id, student_id)

    def _locate(self, locator: LocationProvider) -> GeoPoint:
        try:
            return locator.current_position()
        except LocationUnavailable:
            raise
        except Exception as e:
            raise LocationUnavailable(f"Could not get location: {e}") from e

    def _check_face(self, student_id: str, probe_image: Optional[bytes]) -> None:
        if self._faces is None:
            return
        if probe_image is None:
            if self._require_face:
                raise BiometricFailure("A face capture is required to mark attendance.")
            return

        result = self._faces.match(student_id, probe_image)
        if not result.matched:
            raise BiometricFailure(
                "Face verification failed. Please ensure good lighting and face the camera directly."
            )
