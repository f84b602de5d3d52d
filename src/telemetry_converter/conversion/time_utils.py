"""ISO-8601 parsing and epoch-millisecond conversion with UTC enforcement.

Public Functions:
    iso_to_epoch_ms: Convert an ISO-8601 date-time string to epoch milliseconds
    number_to_epoch_ms: Clip a numeric timestamp to whole epoch milliseconds
    epoch_ms_to_dt: Convert epoch milliseconds to a timezone-aware UTC datetime

Design Invariant:
    Strings without an explicit offset are interpreted as UTC. Naive datetimes
    never leave this module. Malformed input yields `None` instead of raising
    so a single bad reading does not reject the whole document.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

__all__ = ["EPOCH", "MAX_EPOCH_MS", "iso_to_epoch_ms", "number_to_epoch_ms", "epoch_ms_to_dt"]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)
# 100,000,000 days either side of the epoch
MAX_EPOCH_MS = 8_640_000_000_000_000


def iso_to_epoch_ms(value: str) -> Optional[int]:
    """Convert an ISO-8601 date-time string to integer epoch milliseconds.

    Sub-millisecond precision is floored. A trailing ``Z`` (or lowercase ``z``)
    designates UTC.

    Args:
        value: ISO-8601 string such as ``2024-01-01T00:00:00Z``.

    Returns:
        Milliseconds since the Unix epoch, or None when `value` cannot be parsed.
    """
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - EPOCH) // _ONE_MS


def number_to_epoch_ms(value: float) -> Optional[int]:
    """Truncate a numeric timestamp toward zero.

    Returns None for NaN, infinities and values beyond +/- `MAX_EPOCH_MS`.
    """
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if abs(value) > MAX_EPOCH_MS:
        return None
    return int(value)


def epoch_ms_to_dt(ms: int) -> datetime:
    """Convert epoch milliseconds to timezone-aware UTC datetime."""
    return EPOCH + timedelta(milliseconds=ms)
