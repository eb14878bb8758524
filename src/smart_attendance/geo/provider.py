from __future__ import annotations

import threading
from typing import Optional, Protocol

from ..common.validators import require_coordinate
from ..core.exceptions import LocationUnavailable, ValidationError
from .model import GeoPoint


class LocationProvider(Protocol):
    """One-shot "current position" query.

    Implementations raise LocationUnavailable when the position cannot be
    acquired (permission denied, unavailable, timeout).
    """

    def current_position(self) -> GeoPoint:
        raise NotImplementedError


class FixedLocationProvider:
    """Position reported once by a client along with its request.

    The browser performs the geolocation query; the server receives either
    coordinates or the client's error text.
    """

    def __init__(self, point: Optional[GeoPoint], *, error: Optional[str] = None):
        self._point = point
        self._error = error

    @classmethod
    def from_payload(cls, payload: dict) -> "FixedLocationProvider":
        error = payload.get("locationError")
        lat = payload.get("latitude")
        lon = payload.get("longitude")
        if error or lat is None or lon is None:
            return cls(None, error=str(error) if error else None)
        try:
            return cls(
                GeoPoint(
                    latitude=require_coordinate(lat, "Latitude", 90.0),
                    longitude=require_coordinate(lon, "Longitude", 180.0),
                )
            )
        except ValidationError:
            return cls(None, error="Invalid coordinates")

    def current_position(self) -> GeoPoint:
        if self._point is None:
            detail = f": {self._error}" if self._error else ""
            raise LocationUnavailable(f"Could not get location{detail}. Please enable location services.")
        return self._point


class ReportedLocationProvider:
    """Latest position pushed by a long-running client (the presenting faculty device)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._point: Optional[GeoPoint] = None

    def report(self, point: Optional[GeoPoint]) -> None:
        with self._lock:
            self._point = point

    def current_position(self) -> GeoPoint:
        with self._lock:
            point = self._point
        if point is None:
            raise LocationUnavailable("Could not get location. Please enable location services.")
        return point
