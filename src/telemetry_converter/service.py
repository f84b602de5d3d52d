"""Conversion job lifecycle.

`ConversionService` runs the whole upload pipeline synchronously within one
call: decode and parse the file body, validate it, detect the timestamp
encoding, create a pending job, convert, then record the outcome on the job.
The job is the only state; the service keeps no copy of it between calls.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .conversion import (
    convert_telemetry_data,
    detect_timestamp_format,
    loads_strict,
    validate_telemetry_data,
)
from .errors import (
    ConversionError,
    InvalidJsonError,
    JobFailedError,
    JobNotCompletedError,
    JobNotFoundError,
    NoFileUploadedError,
    SchemaValidationError,
)
from .models.jobs import (
    ConversionJob,
    JobStatus,
    JobUpdate,
    NewConversionJob,
    TimestampFormat,
)
from .storage import JobStorage

logger = logging.getLogger(__name__)


@dataclass
class ConversionOutcome:
    job_id: int
    status: JobStatus
    original_format: TimestampFormat
    converted_data: Dict[str, Any]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "status": self.status.value,
            "originalFormat": self.original_format.value,
            "convertedData": self.converted_data,
        }


def parse_upload(content: Optional[bytes]) -> Any:
    """Decode an uploaded file body as strict UTF-8 JSON (see `loads_strict`)."""
    if content is None:
        raise NoFileUploadedError()
    try:
        return loads_strict(content)
    except ValueError as e:
        raise InvalidJsonError(str(e)) from e


class ConversionService:
    def __init__(self, storage: JobStorage):
        self.storage = storage

    async def convert_upload(self, file_name: str, content: Optional[bytes]) -> ConversionOutcome:
        """Run parse -> validate -> detect -> persist -> convert for one file.

        Raises:
            NoFileUploadedError / InvalidJsonError / SchemaValidationError:
                client errors; no job is created.
            JobFailedError: conversion failed and the job was stored as failed.
        """
        original = parse_upload(content)
        result = validate_telemetry_data(original)
        if not result.valid:
            logger.warning("Rejected upload %s: %d validation error(s)", file_name, len(result.errors))
            raise SchemaValidationError(result.errors)

        fmt = detect_timestamp_format(original)
        job = await self.storage.create_job(
            NewConversionJob(
                file_name=file_name,
                original_data=original,
                file_size=len(content or b""),
                timestamp_format=fmt,
            )
        )
        logger.info(
            "Created job id=%s file=%s format=%s entries=%d",
            job.id,
            file_name,
            fmt.value,
            len(result.document.telemetry) if result.document else 0,
        )

        try:
            converted = convert_telemetry_data(original, fmt)
        except ConversionError as e:
            await self.storage.update_job(
                job.id, JobUpdate(status=JobStatus.FAILED, error_message=e.message)
            )
            logger.warning("Job id=%s failed: %s", job.id, e.message)
            raise JobFailedError(job.id, e.message) from e

        await self.storage.update_job(
            job.id, JobUpdate(status=JobStatus.COMPLETED, converted_data=converted)
        )
        logger.info(
            "Job id=%s completed: %d entries normalized", job.id, len(converted["telemetry"])
        )
        return ConversionOutcome(
            job_id=job.id,
            status=JobStatus.COMPLETED,
            original_format=fmt,
            converted_data=converted,
        )

    async def get_job(self, job_id: int) -> ConversionJob:
        job = await self.storage.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def list_jobs(self) -> List[ConversionJob]:
        return await self.storage.list_jobs()

    async def delete_job(self, job_id: int) -> None:
        if not await self.storage.delete_job(job_id):
            raise JobNotFoundError(job_id)
        logger.info("Deleted job id=%s", job_id)

    async def get_converted(self, job_id: int) -> ConversionJob:
        """Fetch a job that has converted data available for download."""
        job = await self.get_job(job_id)
        if job.status is not JobStatus.COMPLETED:
            raise JobNotCompletedError(job_id, job.status.value)
        return job

    async def completed_jobs(self) -> List[ConversionJob]:
        return [j for j in await self.storage.list_jobs() if j.status is JobStatus.COMPLETED]


__all__ = ["ConversionOutcome", "ConversionService", "parse_upload"]
