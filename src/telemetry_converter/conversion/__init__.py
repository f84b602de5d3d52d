"""Timestamp detection, validation and conversion.

Public surface re-exported here so callers can write
`from telemetry_converter.conversion import convert_telemetry_data`.
"""
from __future__ import annotations

from .converter import UNKNOWN_FORMAT_MESSAGE, convert_telemetry_data
from .detection import describe_bytes, describe_format, detect_timestamp_format
from .parsing import loads_strict
from .time_utils import epoch_ms_to_dt, iso_to_epoch_ms, number_to_epoch_ms
from .validation import ValidationResult, validate_telemetry_data

__all__ = [
    "UNKNOWN_FORMAT_MESSAGE",
    "convert_telemetry_data",
    "describe_bytes",
    "describe_format",
    "detect_timestamp_format",
    "epoch_ms_to_dt",
    "iso_to_epoch_ms",
    "loads_strict",
    "number_to_epoch_ms",
    "ValidationResult",
    "validate_telemetry_data",
]
