"""Structural validation of uploaded telemetry documents.

Document-level problems (not an object, no telemetry array, empty array)
stop validation immediately. Entry-level problems are accumulated so a
caller sees every bad entry in one response.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import ValidationError

from ..models.telemetry import MEASUREMENT_FIELDS, TelemetryDocument, TelemetryEntry

__all__ = ["ValidationResult", "validate_telemetry_data"]


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)
    # typed view of the input, set only when valid
    document: Optional[TelemetryDocument] = None

    @property
    def valid(self) -> bool:
        return not self.errors


def _entry_errors(index: int, entry: Any) -> List[str]:
    if not isinstance(entry, dict):
        return [f"Telemetry entry {index} must be an object"]
    ts = entry.get("timestamp")
    if ts is None or ts == "":
        return [f"Telemetry entry {index} must have a timestamp"]
    try:
        TelemetryEntry.model_validate(entry)
    except ValidationError as ve:
        errors: List[str] = []
        for err in ve.errors():
            loc = err.get("loc") or ()
            name = loc[0] if loc else None
            if name == "timestamp":
                msg = f"Telemetry entry {index} timestamp must be a string or number"
            elif name in MEASUREMENT_FIELDS:
                msg = f"Telemetry entry {index} {name} must be a number"
            else:  # pragma: no cover - extra fields are allowed
                msg = f"Telemetry entry {index}: {err.get('msg')}"
            # union members each report; keep one message per field
            if msg not in errors:
                errors.append(msg)
        return errors
    return []


def validate_telemetry_data(data: Any) -> ValidationResult:
    """Validate the shape of a parsed telemetry document.

    Args:
        data: Result of `loads_strict` on the uploaded file.

    Returns:
        A `ValidationResult`; `valid` is True when no errors were found.
    """
    result = ValidationResult()
    if not isinstance(data, dict):
        result.errors.append("Data must be an object")
        return result
    telemetry = data.get("telemetry")
    if not isinstance(telemetry, list):
        result.errors.append("Data must contain a telemetry array")
        return result
    if not telemetry:
        result.errors.append("Telemetry array cannot be empty")
        return result
    for index, entry in enumerate(telemetry):
        result.errors.extend(_entry_errors(index, entry))
    if result.valid:
        result.document = TelemetryDocument.model_validate(data)
    return result
