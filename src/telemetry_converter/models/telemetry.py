"""Pydantic models describing an uploaded telemetry document.

Both models allow extra fields: sensor payloads carry arbitrary readings
beyond the handful named here, and every unknown field must survive a
conversion untouched.
"""
from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr, field_validator

# Strict types so booleans and numeric strings are not silently coerced.
Number = Union[StrictInt, StrictFloat]
Timestamp = Union[StrictStr, StrictInt, StrictFloat]

MEASUREMENT_FIELDS = ("temperature", "humidity", "pressure")


class TelemetryEntry(BaseModel):
    """One timestamped sensor reading."""

    model_config = ConfigDict(extra="allow")

    timestamp: Timestamp
    temperature: Optional[Number] = None
    humidity: Optional[Number] = None
    pressure: Optional[Number] = None

    @field_validator(*MEASUREMENT_FIELDS, mode="before")
    @classmethod
    def reject_null_reading(cls, v: object) -> object:
        # may be omitted, but a present reading must be a number
        if v is None:
            raise ValueError("must be a number")
        return v


class TelemetryDocument(BaseModel):
    """Top-level upload shape: `{"telemetry": [...]}` plus passthrough keys."""

    model_config = ConfigDict(extra="allow")

    telemetry: List[TelemetryEntry]
