from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, store_errors
from .model import UserProfile
from .repository import ProfileRepository

_COLUMNS = "uid, name, email, role, roll_no, section, face_image_url"


def _to_profile(row: dict) -> UserProfile:
    return UserProfile(
        uid=row["uid"],
        name=row["name"],
        email=row["email"],
        role=Role(row["role"]),
        roll_no=row.get("roll_no"),
        section=row.get("section"),
        face_image_url=row.get("face_image_url"),
    )


class MySQLProfileRepository(ProfileRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, uid: str) -> Optional[UserProfile]:
        with store_errors("load profile"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE uid=%s", (uid,))
            row = fetchone(cur)
            return _to_profile(row) if row else None

    def save(self, profile: UserProfile) -> None:
        with store_errors("save profile"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(uid, name, email, role, roll_no, section, face_image_url)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    name=VALUES(name),
                    email=VALUES(email),
                    role=VALUES(role),
                    roll_no=VALUES(roll_no),
                    section=VALUES(section),
                    face_image_url=VALUES(face_image_url)
                """,
                (
                    profile.uid,
                    profile.name,
                    profile.email,
                    profile.role.value,
                    profile.roll_no,
                    profile.section,
                    profile.face_image_url,
                ),
            )

    def update_face_image(self, uid: str, face_image_url: str) -> None:
        with store_errors("update profile"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET face_image_url=%s WHERE uid=%s", (face_image_url, uid))

    def delete(self, uid: str) -> bool:
        with store_errors("delete profile"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE uid=%s", (uid,))
            return cur.rowcount > 0

    def list_by_ids(self, uids: Sequence[str]) -> Sequence[UserProfile]:
        if not uids:
            return []
        placeholders = ",".join(["%s"] * len(uids))
        with store_errors("load profiles"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE uid IN ({placeholders})", tuple(uids))
            return [_to_profile(r) for r in fetchall(cur)]

    def list_by_role(self, role: Role) -> Sequence[UserProfile]:
        with store_errors("load profiles"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE role=%s ORDER BY name", (role.value,))
            return [_to_profile(r) for r in fetchall(cur)]
