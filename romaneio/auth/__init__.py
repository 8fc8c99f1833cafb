"""Authentication for the Romaneio API.

- Users table (name/email/password hash, email unique)
- Opaque bearer tokens: `Authorization: Bearer <token_id>|<secret>`

A login revokes the user's older tokens (one active session per user);
logout revokes only the presented token.
"""

from .errors import (
    AuthError,
    DuplicateEmail,
    InvalidCredentials,
    StoreUnavailable,
    Unauthenticated,
    ValidationError,
)
from .service import login, logout, register, whoami

__all__ = [
    "AuthError",
    "DuplicateEmail",
    "InvalidCredentials",
    "StoreUnavailable",
    "Unauthenticated",
    "ValidationError",
    "login",
    "logout",
    "register",
    "whoami",
]
