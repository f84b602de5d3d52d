"""Pure timestamp normalization for telemetry documents.

The canonical encoding is integer epoch milliseconds. Documents already in
that encoding are returned as-is; ISO documents are rewritten entry by entry
with every other field left untouched.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from ..errors import ConversionError
from ..models.jobs import TimestampFormat
from .detection import detect_timestamp_format, is_number
from .time_utils import iso_to_epoch_ms, number_to_epoch_ms

__all__ = ["UNKNOWN_FORMAT_MESSAGE", "convert_iso_timestamp", "convert_telemetry_data"]

UNKNOWN_FORMAT_MESSAGE = "Unknown timestamp format"


def convert_iso_timestamp(value: Any) -> Optional[int]:
    # Numeric entries in an ISO document are already epoch milliseconds.
    if is_number(value):
        return number_to_epoch_ms(value)
    if not isinstance(value, str):
        return None
    return iso_to_epoch_ms(value)


def convert_telemetry_data(
    data: Dict[str, Any], fmt: Optional[TimestampFormat] = None
) -> Dict[str, Any]:
    """Normalize a validated telemetry document to millisecond timestamps.

    Args:
        data: Parsed, validated telemetry document.
        fmt: Pre-computed detection result; detected from `data` when omitted.

    Returns:
        `data` itself when already in milliseconds, otherwise a shallow copy
        whose `telemetry` list holds copies of each entry with `timestamp`
        replaced. Unparseable ISO strings become None; numeric timestamps
        are kept as whole milliseconds.

    Raises:
        ConversionError: when the timestamp format is unknown.
    """
    if fmt is None:
        fmt = detect_timestamp_format(data)
    if fmt is TimestampFormat.MILLISECONDS:
        return data
    if fmt is TimestampFormat.ISO:
        return {
            **data,
            "telemetry": [
                {**entry, "timestamp": convert_iso_timestamp(entry.get("timestamp"))}
                for entry in data["telemetry"]
            ],
        }
    raise ConversionError(UNKNOWN_FORMAT_MESSAGE)
