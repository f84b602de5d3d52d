"""Download payloads: one pretty-printed JSON file per job, or a ZIP bundle.

File names follow `converted-<original file name>`; the bundle is named after
the UTC date it was built on.
"""
from __future__ import annotations

import io
import json
import zipfile
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .models.jobs import ConversionJob, JobStatus

__all__ = [
    "converted_file_name",
    "dump_json",
    "bundle_file_name",
    "build_zip_bundle",
    "estimate_converted_kb",
]

CONVERTED_PREFIX = "converted-"


def converted_file_name(file_name: str) -> str:
    return f"{CONVERTED_PREFIX}{file_name}"


def dump_json(data: Any) -> str:
    # allow_nan=False: unparseable timestamps are None, never NaN
    return json.dumps(data, indent=2, ensure_ascii=False, allow_nan=False)


def bundle_file_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"converted-telemetry-data-{now.strftime('%Y-%m-%d')}.zip"


def build_zip_bundle(jobs: Iterable[ConversionJob]) -> bytes:
    """Zip the converted data of every completed job.

    Jobs that are not completed are skipped. Duplicate file names get a
    ``-<job id>`` suffix before the extension so no entry is overwritten.
    """
    buf = io.BytesIO()
    used: set[str] = set()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for job in jobs:
            if job.status is not JobStatus.COMPLETED or job.converted_data is None:
                continue
            name = converted_file_name(job.file_name)
            if name in used:
                stem, dot, ext = name.rpartition(".")
                name = f"{stem}-{job.id}.{ext}" if dot else f"{name}-{job.id}"
            used.add(name)
            zf.writestr(name, dump_json(job.converted_data))
    return buf.getvalue()


def estimate_converted_kb(job: ConversionJob) -> int:
    """Rough size of the converted file; millisecond timestamps run ~10% larger."""
    return round(job.file_size / 1024 * 1.1)
