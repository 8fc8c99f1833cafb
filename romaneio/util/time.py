from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utcnow_iso() -> str:
    """Current UTC time as ISO-8601 string with Z."""
    return to_iso(datetime.now(timezone.utc))


def to_iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def utc_after_iso(*, minutes: int = 0, hours: int = 0) -> str:
    """ISO timestamp `minutes`/`hours` from now (negative values go back in time)."""
    return to_iso(datetime.now(timezone.utc) + timedelta(minutes=minutes, hours=hours))
