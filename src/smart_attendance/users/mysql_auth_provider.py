from __future__ import annotations

import uuid

from mysql.connector import Error as MySQLError
from werkzeug.security import check_password_hash, generate_password_hash

from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.exceptions import AuthenticationError, DuplicateIdentity, StorageFailure, WeakCredential
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, is_duplicate_key, store_errors
from .model import Identity
from .repository import AuthProvider


class MySQLAuthProvider(AuthProvider):
    """Identities stored in the ``identities`` table with Werkzeug password hashes."""

    def __init__(self, conn_factory: DatabaseConnection, *, min_password_length: int = MIN_PASSWORD_LENGTH):
        self._conn_factory = conn_factory
        self._min_password_length = int(min_password_length)

    def create_identity(self, email: str, password: str) -> Identity:
        if not password or len(password) < self._min_password_length:
            raise WeakCredential(f"Password should be at least {self._min_password_length} characters.")

        identity = Identity(uid=uuid.uuid4().hex, email=email.strip().lower())
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO identities(uid, email, password_hash) VALUES(%s,%s,%s)",
                    (identity.uid, identity.email, generate_password_hash(password)),
                )
        except MySQLError as e:
            if is_duplicate_key(e):
                raise DuplicateIdentity("An account with this email already exists.") from e
            raise StorageFailure("Failed to create account", cause=e) from e
        return identity

    def delete_identity(self, uid: str) -> None:
        with store_errors("delete account"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM identities WHERE uid=%s", (uid,))

    def sign_in(self, email: str, password: str) -> Identity:
        with store_errors("sign in"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT uid, email, password_hash FROM identities WHERE email=%s",
                ((email or "").strip().lower(),),
            )
            row = fetchone(cur)
            if not row:
                raise AuthenticationError("Invalid email or password.")

            try:
                ok = check_password_hash(row["password_hash"], password)
            except ValueError:
                # e.g. placeholder or corrupted hashes
                ok = False
            if not ok:
                raise AuthenticationError("Invalid email or password.")

            cur.execute("UPDATE identities SET last_sign_in_at=NOW() WHERE uid=%s", (row["uid"],))
            return Identity(uid=row["uid"], email=row["email"])

    def sign_out(self, uid: str) -> None:
        # Sessions are server-side (Flask session); nothing to revoke in the table.
        return None
