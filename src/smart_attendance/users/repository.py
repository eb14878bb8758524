from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import Identity, UserProfile


class ProfileRepository(Protocol):
    """Profile records in the ``users`` collection.

    Note (DIP): services depend on this interface, not on a concrete store.
    """

    def get(self, uid: str) -> Optional[UserProfile]:
        raise NotImplementedError

    def save(self, profile: UserProfile) -> None:
        raise NotImplementedError

    def update_face_image(self, uid: str, face_image_url: str) -> None:
        raise NotImplementedError

    def delete(self, uid: str) -> bool:
        raise NotImplementedError

    def list_by_ids(self, uids: Sequence[str]) -> Sequence[UserProfile]:
        raise NotImplementedError

    def list_by_role(self, role: Role) -> Sequence[UserProfile]:
        raise NotImplementedError


class AuthProvider(Protocol):
    """Email/password identity provider."""

    def create_identity(self, email: str, password: str) -> Identity:
        """Raises DuplicateIdentity or WeakCredential."""

        raise NotImplementedError

    def delete_identity(self, uid: str) -> None:
        raise NotImplementedError

    def sign_in(self, email: str, password: str) -> Identity:
        """Raises AuthenticationError on bad credentials."""

        raise NotImplementedError

    def sign_out(self, uid: str) -> None:
        raise NotImplementedError
