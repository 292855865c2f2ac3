# Overview: UTC clock and ISO-8601 helpers; every stored datetime is naive UTC.

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a client-supplied timestamp or calendar date into naive UTC.

    Blank input gives None. A bare "YYYY-MM-DD" (typical for expiry dates on
    packaging) means midnight UTC that day. Offsets, including a trailing Z,
    are converted to UTC. Raises ValueError on anything else.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()

    if len(text) == 10:
        d = date.fromisoformat(text)
        return datetime(d.year, d.month, d.day)

    parsed = datetime.fromisoformat(text[:-1] + "+00:00" if text.endswith("Z") else text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second-precision ISO-8601 with a Z suffix; naive input is taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"


def days_until(dt: Optional[datetime], as_of: Optional[datetime] = None) -> Optional[int]:
    """Whole days from as_of (default now) to dt; negative once dt has passed."""
    if dt is None:
        return None
    return (dt - (as_of or utcnow())).days
