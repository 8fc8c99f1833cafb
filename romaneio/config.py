import os
from dataclasses import dataclass
from typing import Optional

# Optional: load a local .env file if present.
try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    # If python-dotenv isn't installed or .env isn't present, that's fine.
    pass


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    Values come from environment variables (or a .env file). Tests build their
    own instance, e.g. ``Config(DB_DSN=str(tmp_path / "t.sqlite"))``.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred: set ROMANEIO_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: ROMANEIO_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("ROMANEIO_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("ROMANEIO_DB_PATH", "./romaneio.sqlite")
    )

    # -----------------
    # Auth (opaque bearer tokens)
    # -----------------
    # Random bytes per token secret. Anything below 16 (128 bits) is raised to 16.
    AUTH_TOKEN_BYTES: int = int(os.environ.get("AUTH_TOKEN_BYTES", "32"))

    # 0 means tokens never expire; they stay valid until revoked.
    AUTH_TOKEN_EXPIRE_MINUTES: int = int(os.environ.get("AUTH_TOKEN_EXPIRE_MINUTES", "0"))

    # PBKDF2 iterations for new password hashes. Hashes made with fewer rounds
    # are upgraded on the next successful login.
    AUTH_PASSWORD_ROUNDS: int = int(os.environ.get("AUTH_PASSWORD_ROUNDS", "29000"))

    # Single active session: a successful login revokes every older token of that user.
    AUTH_REVOKE_ON_LOGIN: bool = _env_bool("AUTH_REVOKE_ON_LOGIN", True) is True

    # scripts/prune_tokens.py removes revoked/expired tokens older than this.
    AUTH_TOKEN_PRUNE_HOURS: int = int(os.environ.get("AUTH_TOKEN_PRUNE_HOURS", "24"))

    # -----------------
    # CORS (development)
    # -----------------
    # The SPA runs on Vite (:5173) during development; production is same-origin.
    CORS_ALLOW_ORIGINS: str = os.environ.get(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
    )


def load_config() -> Config:
    return Config()
