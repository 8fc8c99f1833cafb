from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class UserIdentity:
    id: int
    name: str
    email: str
    password_hash: str = field(repr=False)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "UserIdentity":
        return cls(
            id=int(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            password_hash=str(row["password_hash"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def summary(self) -> Dict[str, Any]:
        """Public view of the account. The password hash never leaves the store."""
        return {"id": self.id, "name": self.name, "email": self.email}


@dataclass(frozen=True)
class SessionToken:
    token_id: int
    owner_id: int
    created_at: str
    revoked: bool = False
    expires_at: Optional[str] = None
    last_used_at: Optional[str] = None
    # Only set on the instance returned at issuance.
    secret_value: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_row(cls, row: Any, *, secret_value: Optional[str] = None) -> "SessionToken":
        return cls(
            token_id=int(row["token_id"]),
            owner_id=int(row["user_id"]),
            created_at=str(row["created_at"]),
            revoked=int(row["revoked"] or 0) == 1,
            expires_at=row["expires_at"],
            last_used_at=row["last_used_at"],
            secret_value=secret_value,
        )

    @property
    def plain_text(self) -> str:
        """Value handed to the client: `<token_id>|<secret>`."""
        if not self.secret_value:
            raise ValueError("token_secret_unavailable")
        return f"{self.token_id}|{self.secret_value}"
