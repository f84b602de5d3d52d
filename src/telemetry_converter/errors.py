"""Error taxonomy for the conversion pipeline.

Every error the service surfaces to a caller derives from `ConverterError`
and carries the HTTP status the API maps it to. Conversion failures are
recorded on the job before being re-raised as `JobFailedError`, so the
caller sees both the HTTP error and the persisted failed state.
"""
from __future__ import annotations

from typing import Any, List, Optional


class ConverterError(Exception):
    """Base class for all errors surfaced by the converter."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"message": self.message}


class NoFileUploadedError(ConverterError):
    status_code = 400

    def __init__(self) -> None:
        super().__init__("No file uploaded")


class InvalidJsonError(ConverterError):
    status_code = 400

    def __init__(self, detail: Optional[str] = None):
        super().__init__("Invalid JSON format")
        self.detail = detail


class SchemaValidationError(ConverterError):
    """Document failed structural validation; carries every error found."""

    status_code = 400

    def __init__(self, errors: List[str]):
        super().__init__("Invalid telemetry data structure")
        self.errors = list(errors)

    def to_payload(self) -> dict[str, Any]:
        return {"message": self.message, "errors": self.errors}


class ConversionError(ConverterError):
    """Timestamps could not be normalized (e.g. unknown format)."""


class JobFailedError(ConverterError):
    """A job was persisted in the failed state during this request."""

    status_code = 500

    def __init__(self, job_id: int, message: str):
        super().__init__(message)
        self.job_id = job_id

    def to_payload(self) -> dict[str, Any]:
        return {"jobId": self.job_id, "status": "failed", "message": self.message}


class JobNotFoundError(ConverterError):
    status_code = 404

    def __init__(self, job_id: int):
        super().__init__("Job not found")
        self.job_id = job_id


class JobNotCompletedError(ConverterError):
    status_code = 409

    def __init__(self, job_id: int, status: str):
        super().__init__(f"Job {job_id} has no converted data (status={status})")
        self.job_id = job_id


class InvalidRequestError(ConverterError):
    """Request did not match the route's parameters."""

    status_code = 400

    def __init__(self, detail: Optional[str] = None):
        super().__init__("Invalid request")
        self.detail = detail


class NothingToExportError(ConverterError):
    status_code = 404

    def __init__(self) -> None:
        super().__init__("No completed jobs to export")


class InvalidTransitionError(ConverterError):
    """Programming error: a terminal job was asked to change state."""

    def __init__(self, job_id: int, current: Any, target: Any):
        cur = getattr(current, "value", current)
        tgt = getattr(target, "value", target)
        super().__init__(f"Job {job_id} cannot move from {cur} to {tgt}")
        self.job_id = job_id


__all__ = [
    "ConverterError",
    "NoFileUploadedError",
    "InvalidJsonError",
    "SchemaValidationError",
    "ConversionError",
    "JobFailedError",
    "JobNotFoundError",
    "JobNotCompletedError",
    "NothingToExportError",
    "InvalidRequestError",
    "InvalidTransitionError",
]
