from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ..common.datetime_utils import now_ms
from ..core.constants import QR_REFRESH_SECONDS
from ..core.exceptions import LocationUnavailable, ValidationError
from ..geo.model import GeoPoint
from ..geo.provider import LocationProvider, ReportedLocationProvider
from .model import SessionToken

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], "threading.Timer"]


def daemon_timer(interval_s: float, fn: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval_s, fn)
    timer.daemon = True
    return timer


class CodeGeneratorSession:
    """Emits a fresh location-stamped token on a fixed cadence.

    The first token is produced synchronously by ``start()``; the refresh
    timer is armed only after it succeeds and is re-armed after each tick
    completes. A tick that arrives while a location query is still pending is
    skipped. A failed location query halts the session for good.
    """

    def __init__(
        self,
        *,
        course_id: str,
        faculty_id: str,
        locator: LocationProvider,
        interval_s: float = QR_REFRESH_SECONDS,
        clock: Callable[[], int] = now_ms,
        timer_factory: TimerFactory = daemon_timer,
        on_token: Optional[Callable[[SessionToken], None]] = None,
        on_error: Optional[Callable[[LocationUnavailable], None]] = None,
    ):
        self.course_id = course_id
        self.faculty_id = faculty_id
        self._locator = locator
        self._interval_s = float(interval_s)
        self._clock = clock
        self._timer_factory = timer_factory
        self._on_token = on_token
        self._on_error = on_error

        self._lock = threading.Lock()
        self._active = False
        self._stopped = False
        self._in_flight = False
        self._timer = None
        self._current: Optional[SessionToken] = None
        self.error: Optional[LocationUnavailable] = None

    @property
    def active(self) -> bool:
        return self._active

    @property
    def current_token(self) -> Optional[SessionToken]:
        return self._current

    def start(self) -> Optional[SessionToken]:
        with self._lock:
            if self._stopped:
                raise ValidationError("This attendance session has ended; start a new one.")
            if self._active:
                return self._current
            self._active = True

        token = self.tick()
        if token is not None:
            self._schedule()
        return token

    def tick(self) -> Optional[SessionToken]:
        with self._lock:
            if not self._active or self._in_flight:
                return None
            self._in_flight = True

        try:
            try:
                position = self._locator.current_position()
            except LocationUnavailable as e:
                self._fail(e)
                return None
            except Exception as e:
                logger.exception("Location query failed for course %s", self.course_id)
                self._fail(LocationUnavailable(f"Could not get location: {e}"))
                return None

            token = self._build_token(position)
            with self._lock:
                if not self._active:
                    # Stopped while the location query was pending.
                    return None
                self._current = token
        finally:
            with self._lock:
                self._in_flight = False

        if self._on_token:
            self._on_token(token)
        return token

    def stop(self) -> None:
        with self._lock:
            self._active = False
            self._stopped = True
            self._current = None
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def __enter__(self) -> "CodeGeneratorSession":
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    def _build_token(self, position: GeoPoint) -> SessionToken:
        issued_at = int(self._clock())
        return SessionToken(
            session_id=f"sess-{issued_at}",
            course_id=self.course_id,
            faculty_id=self.faculty_id,
            issued_at=issued_at,
            location=position,
        )

    def _schedule(self) -> None:
        with self._lock:
            if not self._active:
                return
            timer = self._timer_factory(self._interval_s, self._on_timer)
            self._timer = timer
        timer.start()

    def _on_timer(self) -> None:
        self.tick()
        self._schedule()

    def _fail(self, error: LocationUnavailable) -> None:
        logger.warning("Halting attendance session for course %s: %s", self.course_id, error)
        self.error = error
        self.stop()
        if self._on_error:
            self._on_error(error)


class SessionRegistry:
    """At most one running generator per faculty member."""

    def __init__(
        self,
        *,
        interval_s: float = QR_REFRESH_SECONDS,
        clock: Callable[[], int] = now_ms,
        timer_factory: TimerFactory = daemon_timer,
    ):
        self._interval_s = interval_s
        self._clock = clock
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._sessions: dict[str, CodeGeneratorSession] = {}
        self._locators: dict[str, ReportedLocationProvider] = {}

    def report_location(self, faculty_id: str, point: Optional[GeoPoint]) -> None:
        self._locator_for(faculty_id).report(point)

    def start(
        self,
        *,
        course_id: str,
        faculty_id: str,
        location: Optional[GeoPoint] = None,
        locator: Optional[LocationProvider] = None,
    ) -> CodeGeneratorSession:
        """Replace the faculty member's session with a new one.

        Without an explicit ``locator`` the session refreshes from reported
        positions, seeded with ``location``; a position left over from an
        earlier session is never reused.
        """
        self._halt(self._pop(faculty_id))
        if locator is None:
            locator = self._locator_for(faculty_id)
            locator.report(location)

        session = CodeGeneratorSession(
            course_id=course_id,
            faculty_id=faculty_id,
            locator=locator,
            interval_s=self._interval_s,
            clock=self._clock,
            timer_factory=self._timer_factory,
        )
        session.start()
        if session.error is not None:
            raise session.error

        with self._lock:
            displaced = self._sessions.get(faculty_id)
            self._sessions[faculty_id] = session
        # Concurrent start for the same faculty member.
        if displaced is not None and displaced is not session:
            self._halt(displaced)
        logger.info("Attendance session started: course=%s faculty=%s", course_id, faculty_id)
        return session

    def get(self, faculty_id: str) -> Optional[CodeGeneratorSession]:
        with self._lock:
            session = self._sessions.get(faculty_id)
        if session is None or not session.active:
            return None
        return session

    def current_token(self, faculty_id: str) -> Optional[SessionToken]:
        session = self.get(faculty_id)
        return session.current_token if session else None

    def halted_error(self, faculty_id: str) -> Optional[LocationUnavailable]:
        """Error that halted the faculty's session after it started, if any."""
        with self._lock:
            session = self._sessions.get(faculty_id)
        return session.error if session else None

    def stop(self, faculty_id: str) -> bool:
        self._locator_for(faculty_id).report(None)
        return self._halt(self._pop(faculty_id))

    def _pop(self, faculty_id: str) -> Optional[CodeGeneratorSession]:
        with self._lock:
            return self._sessions.pop(faculty_id, None)

    @staticmethod
    def _halt(session: Optional[CodeGeneratorSession]) -> bool:
        if session is None:
            return False
        session.stop()
        logger.info("Attendance session stopped: course=%s faculty=%s", session.course_id, session.faculty_id)
        return True

    def stop_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            locators = list(self._locators.values())
        for locator in locators:
            locator.report(None)
        for session in sessions:
            session.stop()

    def _locator_for(self, faculty_id: str) -> ReportedLocationProvider:
        with self._lock:
            locator = self._locators.get(faculty_id)
            if locator is None:
                locator = ReportedLocationProvider()
                self._locators[faculty_id] = locator
            return locator
