from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, NotFound, ValidationError
from .model import UserProfile
from .repository import AuthProvider, ProfileRepository

logger = logging.getLogger(__name__)


class AuthService:
    """Use case: sign in / sign out against the identity provider."""

    def __init__(self, auth: AuthProvider, profiles: ProfileRepository):
        self._auth = auth
        self._profiles = profiles

    def sign_in(self, email: str, password: str) -> UserProfile:
        if not email or not password:
            raise AuthenticationError("Invalid email or password.")

        identity = self._auth.sign_in(email, password)
        profile = self._profiles.get(identity.uid)
        if profile is None:
            # Identity without a profile: never leave it signed in.
            logger.warning("Signed-in identity %s has no profile; signing out", identity.uid)
            self._auth.sign_out(identity.uid)
            raise NotFound("Your user data could not be found. Please sign up again or contact support.")
        return profile

    def sign_out(self, uid: Optional[str]) -> None:
        if uid:
            self._auth.sign_out(uid)

    def current_profile(self, uid: str) -> UserProfile:
        profile = self._profiles.get(uid)
        if profile is None:
            raise NotFound("Your user data could not be found. Please sign up again or contact support.")
        return profile


class StudentDirectoryService:
    """Use case: faculty browse and remove student profiles."""

    def __init__(self, profiles: ProfileRepository):
        self._profiles = profiles

    def list_students(self) -> Sequence[UserProfile]:
        return self._profiles.list_by_role(Role.STUDENT)

    def delete_student(self, uid: str) -> None:
        """Remove the profile record. The sign-in identity is left in place."""
        profile = self._profiles.get(uid)
        if profile is None:
            raise NotFound("Student not found")
        if profile.role is not Role.STUDENT:
            raise ValidationError("Only student profiles can be removed.")
        self._profiles.delete(uid)
        logger.info("Student profile removed: %s", uid)
