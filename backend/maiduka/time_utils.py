from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional


def now_millis() -> int:
    """Device 'now' as epoch milliseconds (the canonical ledger timestamp)."""
    return time.time_ns() // 1_000_000


def parse_iso_millis(value: Optional[str]) -> Optional[int]:
    """
    Parse an ISO-8601 datetime string into epoch milliseconds.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return int(dt.timestamp() * 1000)


def millis_to_utc_z(value: Optional[int]) -> Optional[str]:
    """
    Serializes epoch milliseconds to ISO-8601 with trailing 'Z'.
    """
    if value is None:
        return None
    dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(microsecond=0)
    return dt.isoformat().replace("+00:00", "Z")
