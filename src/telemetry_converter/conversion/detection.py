"""Timestamp encoding detection.

Only the first telemetry entry is inspected. Documents that mix encodings
are classified by that first entry alone.
"""
from __future__ import annotations

from typing import Any

from ..models.jobs import TimestampFormat
from .parsing import loads_strict

__all__ = [
    "ISO_MARKER",
    "INVALID_JSON_LABEL",
    "detect_timestamp_format",
    "is_number",
    "describe_format",
    "describe_bytes",
]

ISO_MARKER = "T"

_LABELS = {
    TimestampFormat.ISO: "ISO format",
    TimestampFormat.MILLISECONDS: "Milliseconds format",
    TimestampFormat.UNKNOWN: "Unknown format",
}
INVALID_JSON_LABEL = "Invalid JSON"


def is_number(value: Any) -> bool:
    # bool is an int subclass but never a timestamp
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def detect_timestamp_format(data: Any) -> TimestampFormat:
    """Classify the timestamp encoding of a parsed telemetry document.

    Returns `iso` when the first entry's timestamp is a string containing the
    ISO date/time separator ``T``, `milliseconds` when it is a number, and
    `unknown` otherwise (including documents without a non-empty telemetry
    array).
    """
    if not isinstance(data, dict):
        return TimestampFormat.UNKNOWN
    telemetry = data.get("telemetry")
    if not isinstance(telemetry, list) or not telemetry:
        return TimestampFormat.UNKNOWN
    first = telemetry[0]
    if not isinstance(first, dict):
        return TimestampFormat.UNKNOWN
    ts = first.get("timestamp")
    if isinstance(ts, str) and ISO_MARKER in ts:
        return TimestampFormat.ISO
    if is_number(ts):
        return TimestampFormat.MILLISECONDS
    return TimestampFormat.UNKNOWN


def describe_format(fmt: TimestampFormat) -> str:
    return _LABELS[fmt]


def describe_bytes(raw: bytes | str) -> str:
    """Human readable format label for an unparsed file body.

    Bodies the upload endpoint would reject as invalid JSON get the
    `INVALID_JSON_LABEL` here too.
    """
    try:
        data = loads_strict(raw)
    except ValueError:
        return INVALID_JSON_LABEL
    return describe_format(detect_timestamp_format(data))
