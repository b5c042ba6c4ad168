"""
ULID generation and timestamp utilities (stdlib-only).

All instants inside cronspine are timezone-aware UTC ``datetime`` objects.
Naive values arriving from callers are interpreted as UTC. The run store
persists instants as fixed-width ISO strings with millisecond precision so
that lexical ordering in SQL equals chronological ordering.

Features:
    - **utc_now():** Timezone-aware UTC datetime
    - **ensure_utc():** Normalise any datetime to aware UTC
    - **generate_ulid():** Time-sortable 26-char run identifiers
    - **to_iso8601() / from_iso8601():** Wire serialisation, accepts ``Z``
    - **to_db() / from_db():** Fixed-width storage form
    - **from_epoch_ms() / to_epoch_ms():** Runtime payload conversion

Tags:
    timestamps, ulid, utc, datetime, stdlib-only, cronspine
"""

import random
import time
from datetime import UTC, datetime

_DB_FORMAT = "%Y-%m-%dT%H:%M:%S"


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Return *dt* as an aware UTC datetime (naive input is taken as UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def generate_ulid(at: datetime | None = None) -> str:
    """
    Generate a ULID-like identifier.

    Format: 26 characters of Crockford base32; the first 10 encode the
    millisecond timestamp (of *at* when given) so ids sort by creation time.
    """
    if at is None:
        timestamp_ms = int(time.time() * 1000)
    else:
        timestamp_ms = to_epoch_ms(at)
    timestamp_chars = _encode_base32(timestamp_ms, 10)
    random_part = "".join(random.choices(_ENCODING, k=16))
    return timestamp_chars + random_part


def to_iso8601(dt: datetime | None) -> str | None:
    """Convert datetime to an ISO 8601 UTC string with a ``Z`` suffix."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def from_iso8601(s: str | None) -> datetime | None:
    """Parse an ISO 8601 string (``Z`` accepted) to aware UTC."""
    if s is None or s == "":
        return None
    return ensure_utc(datetime.fromisoformat(s.replace("Z", "+00:00")))


def to_db(dt: datetime | None) -> str | None:
    """Fixed-width storage form: ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    if dt is None:
        return None
    dt = ensure_utc(dt)
    return f"{dt.strftime(_DB_FORMAT)}.{dt.microsecond // 1000:03d}Z"


def from_db(s: str | None) -> datetime | None:
    """Inverse of :func:`to_db`."""
    return from_iso8601(s)


def to_epoch_ms(dt: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return int(ensure_utc(dt).timestamp() * 1000)


def from_epoch_ms(ms: int | float | None) -> datetime | None:
    """Aware UTC datetime from milliseconds since the Unix epoch."""
    if ms is None:
        return None
    return datetime.fromtimestamp(ms / 1000, UTC)


# ULID base32 alphabet (Crockford's)
_ENCODING = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_ENCODING_LEN = len(_ENCODING)


def _encode_base32(value: int, length: int) -> str:
    """Encode integer to base32 string of fixed length."""
    result = []
    for _ in range(length):
        result.append(_ENCODING[value % _ENCODING_LEN])
        value //= _ENCODING_LEN
    return "".join(reversed(result))
