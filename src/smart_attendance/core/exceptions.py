from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    kind = "DomainError"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "ValidationError"


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""

    kind = "AuthenticationError"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    kind = "AuthorizationError"


class InvalidToken(DomainError):
    """Raised when scanned text is not a session token."""

    kind = "InvalidToken"


class ExpiredToken(DomainError):
    """Raised when a session token is older than the freshness window."""

    kind = "ExpiredToken"


class OutOfRange(DomainError):
    """Raised when the scanner is outside the geofence."""

    kind = "OutOfRange"

    def __init__(self, message: str, *, distance_m: float, radius_m: float):
        super().__init__(message)
        self.distance_m = distance_m
        self.radius_m = radius_m


class LocationUnavailable(DomainError):
    """Raised when the current position cannot be acquired."""

    kind = "LocationUnavailable"


class DuplicateIdentity(DomainError):
    """Raised when an identity already exists for an email."""

    kind = "DuplicateIdentity"


class WeakCredential(DomainError):
    """Raised when a password does not meet the minimum policy."""

    kind = "WeakCredential"


class StorageFailure(DomainError):
    """Raised when the document store or object storage fails."""

    kind = "StorageFailure"

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class BiometricFailure(DomainError):
    """Raised when face capture, validation, upload or matching fails."""

    kind = "BiometricFailure"


class ProfileWriteFailure(DomainError):
    """Raised when a profile record cannot be written."""

    kind = "ProfileWriteFailure"


class NotFound(DomainError):
    """Raised when a required record does not exist."""

    kind = "NotFound"
