"""Bearer token issuance, revocation and lookup.

Tokens are handed out as ``<token_id>|<secret>``. Only sha256(secret) is
persisted, so a copy of the database cannot be replayed as credentials.

Lifecycle: active -> revoked (terminal). Expired tokens are treated like
revoked ones by the lookup but keep revoked=0 until pruned.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

from romaneio.models import SessionToken
from romaneio.util.hashing import digests_equal
from romaneio.util.time import utc_after_iso, utcnow_iso

from .security import generate_token_secret, hash_token_secret


DEFAULT_TOKEN_NAME = "auth_token"
MAX_TOKEN_ID = 2**63 - 1


def _debug(msg: str) -> None:
    print(f"[tokens] {msg}")


def _split_presented(presented: str) -> Tuple[Optional[int], str]:
    value = (presented or "").strip()
    if "|" not in value:
        return None, value
    tid, _, secret = value.partition("|")
    # Ids are BIGINT row keys: anything else can never match and must not reach the driver.
    if not (tid.isascii() and tid.isdigit()):
        return None, ""
    token_id = int(tid)
    if not 0 < token_id <= MAX_TOKEN_ID:
        return None, ""
    return token_id, secret


def get_token(conn: Any, token_id: int) -> Optional[SessionToken]:
    row = conn.execute(
        "SELECT * FROM personal_access_tokens WHERE token_id=?",
        (int(token_id),),
    ).fetchone()
    return SessionToken.from_row(row) if row is not None else None


def issue_token(
    conn: Any,
    owner_id: int,
    *,
    name: str = DEFAULT_TOKEN_NAME,
    nbytes: int = 32,
    expires_minutes: int = 0,
) -> SessionToken:
    """Mint a token for `owner_id`. The returned instance carries the secret."""
    secret = generate_token_secret(nbytes)
    token_hash = hash_token_secret(secret)
    now = utcnow_iso()
    expires_at = utc_after_iso(minutes=int(expires_minutes)) if int(expires_minutes) > 0 else None

    conn.execute(
        """
        INSERT INTO personal_access_tokens (user_id, name, token_hash, revoked, expires_at, created_at)
        VALUES (?,?,?,0,?,?)
        """,
        (int(owner_id), name, token_hash, expires_at, now),
    )
    row = conn.execute(
        "SELECT * FROM personal_access_tokens WHERE token_hash=?",
        (token_hash,),
    ).fetchone()
    assert row is not None
    token = SessionToken.from_row(row, secret_value=secret)
    _debug(f"Issued token_id={token.token_id} user_id={token.owner_id}")
    return token


def revoke_token(conn: Any, token_id: int) -> None:
    """Revoke one token. Unknown or already-revoked ids are a no-op."""
    cur = conn.execute(
        "UPDATE personal_access_tokens SET revoked=1, revoked_at=? WHERE token_id=? AND revoked=0",
        (utcnow_iso(), int(token_id)),
    )
    if cur.rowcount:
        _debug(f"Revoked token_id={token_id}")


def revoke_all_tokens(conn: Any, owner_id: int) -> int:
    cur = conn.execute(
        "UPDATE personal_access_tokens SET revoked=1, revoked_at=? WHERE user_id=? AND revoked=0",
        (utcnow_iso(), int(owner_id)),
    )
    n = int(cur.rowcount or 0)
    if n:
        _debug(f"Revoked {n} token(s) for user_id={owner_id}")
    return n


def find_active_token(conn: Any, presented: str, *, touch: bool = True) -> Optional[SessionToken]:
    """Return the active token matching `presented`, or None.

    The stored hash is compared with hmac.compare_digest. Revoked and expired
    tokens never match. When `touch` is set, last_used_at is refreshed.
    """
    token_id, secret = _split_presented(presented)
    if not secret:
        return None

    candidate = hash_token_secret(secret)
    if token_id is not None:
        row = conn.execute(
            "SELECT * FROM personal_access_tokens WHERE token_id=?",
            (token_id,),
        ).fetchone()
    else:
        row = conn.execute(
            "SELECT * FROM personal_access_tokens WHERE token_hash=?",
            (candidate,),
        ).fetchone()
    if row is None:
        return None
    if not digests_equal(candidate, str(row["token_hash"])):
        return None
    if int(row["revoked"] or 0) != 0:
        return None

    now = utcnow_iso()
    expires_at = row["expires_at"]
    if expires_at and str(expires_at) <= now:
        return None

    if touch:
        conn.execute(
            "UPDATE personal_access_tokens SET last_used_at=? WHERE token_id=?",
            (now, int(row["token_id"])),
        )
    return SessionToken.from_row(row)


def prune_tokens(conn: Any, *, older_than_hours: int = 24) -> int:
    """Delete tokens revoked or expired more than `older_than_hours` ago."""
    cutoff = utc_after_iso(hours=-max(0, int(older_than_hours)))
    cur = conn.execute(
        """
        DELETE FROM personal_access_tokens
        WHERE (revoked=1 AND revoked_at IS NOT NULL AND revoked_at < ?)
           OR (expires_at IS NOT NULL AND expires_at < ?)
        """,
        (cutoff, cutoff),
    )
    n = int(cur.rowcount or 0)
    _debug(f"Pruned {n} token(s) older than {older_than_hours}h")
    return n
