"""Pydantic models for conversion jobs and the stub user table.

These models are the single representation of a persisted job: the storage
backends build them from rows, the service layer mutates them only through
`JobUpdate`, and the API serializes them with camelCase keys (`fileName`,
`convertedData`, ...) to match the JSON contract of the HTTP interface.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from ..errors import InvalidTransitionError


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    def can_transition_to(self, target: "JobStatus") -> bool:
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: Dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


class TimestampFormat(str, Enum):
    ISO = "iso"
    MILLISECONDS = "milliseconds"
    UNKNOWN = "unknown"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NewConversionJob(_CamelModel):
    """Fields supplied when a job is first created (status is always pending)."""

    file_name: str
    original_data: Dict[str, Any]
    file_size: int = Field(ge=0)
    timestamp_format: TimestampFormat


class JobUpdate(_CamelModel):
    """Partial update applied to an existing job.

    Only fields explicitly set are applied (`model_dump(exclude_unset=True)`).
    """

    status: Optional[JobStatus] = None
    converted_data: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None


class ConversionJob(_CamelModel):
    """A persisted record of one upload-and-transform operation.

    Invariant: `converted_data` is present iff status is completed, and
    `error_message` is present iff status is failed.
    """

    id: int
    file_name: str
    original_data: Dict[str, Any]
    converted_data: Optional[Dict[str, Any]] = None
    status: JobStatus = JobStatus.PENDING
    error_message: Optional[str] = None
    file_size: int
    timestamp_format: TimestampFormat
    created_at: int

    @model_validator(mode="after")
    def check_outcome_fields(self) -> "ConversionJob":
        completed = self.status is JobStatus.COMPLETED
        failed = self.status is JobStatus.FAILED
        if completed != (self.converted_data is not None):
            raise ValueError("convertedData must be present exactly when status is completed")
        if failed != bool(self.error_message):
            raise ValueError("errorMessage must be present exactly when status is failed")
        return self

    def apply(self, update: JobUpdate) -> "ConversionJob":
        """Return a new, re-validated job with `update` applied.

        Raises:
            InvalidTransitionError: if the status change is not allowed.
            pydantic.ValidationError: if the result violates the outcome invariant.
        """
        changes = update.model_dump(exclude_unset=True)
        target = changes.get("status")
        if target is not None and target is not self.status:
            if not self.status.can_transition_to(target):
                raise InvalidTransitionError(self.id, self.status, target)
        merged = {**self.model_dump(), **changes}
        return ConversionJob.model_validate(merged)

    @property
    def entry_count(self) -> int:
        data = self.converted_data or {}
        telemetry = data.get("telemetry")
        return len(telemetry) if isinstance(telemetry, list) else 0


class NewUser(_CamelModel):
    username: str = Field(min_length=1)
    password: str


class User(_CamelModel):
    id: int
    username: str
    password: str
