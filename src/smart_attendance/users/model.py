from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Identity:
    """An authentication identity (email + password account)."""

    uid: str
    email: str


@dataclass(frozen=True)
class UserProfile:
    """Domain entity: profile record keyed by the identity's uid.

    Note: plain data object, no DB access code here.
    """

    uid: str
    name: str
    email: str
    role: Role
    roll_no: Optional[str] = None
    section: Optional[str] = None
    face_image_url: Optional[str] = None

    def with_face_image(self, url: Optional[str]) -> "UserProfile":
        return replace(self, face_image_url=url)

    def to_dict(self) -> dict:
        data = {
            "id": self.uid,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
        }
        if self.role == Role.STUDENT:
            data["rollNo"] = self.roll_no
            data["section"] = self.section
        if self.face_image_url:
            data["faceImageUrl"] = self.face_image_url
        return data
