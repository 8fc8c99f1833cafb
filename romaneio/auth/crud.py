from __future__ import annotations

from typing import Any, Optional

from romaneio.db import is_unique_violation
from romaneio.models import UserIdentity
from romaneio.util.time import utcnow_iso

from .errors import DuplicateEmail, ValidationError


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user_by_email(conn: Any, email: str) -> Optional[UserIdentity]:
    e = normalize_email(email)
    if not e:
        return None
    row = conn.execute(
        "SELECT * FROM users WHERE email=?",
        (e,),
    ).fetchone()
    return UserIdentity.from_row(row) if row is not None else None


def get_user_by_id(conn: Any, user_id: int) -> Optional[UserIdentity]:
    row = conn.execute(
        "SELECT * FROM users WHERE id=?",
        (int(user_id),),
    ).fetchone()
    return UserIdentity.from_row(row) if row is not None else None


def create_user(
    conn: Any,
    *,
    name: str,
    email: str,
    password_hash: str,
) -> UserIdentity:
    """Insert a user row.

    Uniqueness is left to the UNIQUE(email) constraint: two concurrent
    registrations for the same address cannot both pass a SELECT-then-INSERT.
    """
    n = (name or "").strip()
    e = normalize_email(email)
    errors = {}
    if not n:
        errors["name"] = ["Nome é obrigatório"]
    if not e:
        errors["email"] = ["Email é obrigatório"]
    if errors:
        raise ValidationError(errors)
    if not password_hash:
        raise ValueError("password_hash_blank")

    now = utcnow_iso()
    try:
        conn.execute(
            """
            INSERT INTO users (name, email, password_hash, created_at, updated_at)
            VALUES (?,?,?,?,?)
            """,
            (n, e, password_hash, now, now),
        )
    except Exception as exc:
        if is_unique_violation(exc):
            _debug(f"Duplicate registration rejected for email={e}")
            raise DuplicateEmail() from exc
        raise

    user = get_user_by_email(conn, e)
    assert user is not None
    return user


def update_password_hash(conn: Any, user_id: int, password_hash: str) -> None:
    conn.execute(
        "UPDATE users SET password_hash=?, updated_at=? WHERE id=?",
        (password_hash, utcnow_iso(), int(user_id)),
    )
