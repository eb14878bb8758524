from __future__ import annotations

import json
from dataclasses import dataclass

from ..core.exceptions import InvalidToken
from ..geo.model import GeoPoint


@dataclass(frozen=True)
class SessionToken:
    """Ephemeral, location-stamped code for one attendance window.

    Never persisted: it lives only in the rendered QR code and in the
    scanning client's memory.
    """

    session_id: str
    course_id: str
    faculty_id: str
    issued_at: int
    location: GeoPoint

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.issued_at


def encode_token(token: SessionToken) -> str:
    """Compact JSON payload rendered into the QR code."""
    payload = {
        "sessionId": token.session_id,
        "courseId": token.course_id,
        "facultyId": token.faculty_id,
        "timestamp": token.issued_at,
        "location": token.location.to_dict(),
    }
    return json.dumps(payload, separators=(",", ":"))


def decode_token(text: str) -> SessionToken:
    try:
        data = json.loads(text)
    except (TypeError, json.JSONDecodeError):
        raise InvalidToken("Invalid QR code format")

    if not isinstance(data, dict):
        raise InvalidToken("Invalid QR code format")

    for field in ("sessionId", "courseId", "facultyId", "timestamp", "location"):
        if field not in data:
            raise InvalidToken(f"Missing field: {field}")

    location = data["location"]
    try:
        return SessionToken(
            session_id=str(data["sessionId"]),
            course_id=str(data["courseId"]),
            faculty_id=str(data["facultyId"]),
            issued_at=int(data["timestamp"]),
            location=GeoPoint(latitude=float(location["latitude"]), longitude=float(location["longitude"])),
        )
    except (KeyError, TypeError, ValueError):
        raise InvalidToken("Invalid QR code")
