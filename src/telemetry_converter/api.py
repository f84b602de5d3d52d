"""HTTP interface built on FastAPI.

Routes:
    POST   /api/convert              multipart upload (field `file`)
    GET    /api/jobs                 all jobs
    GET    /api/jobs/{id}            one job
    DELETE /api/jobs/{id}            remove a job
    GET    /api/jobs/{id}/download   converted JSON as an attachment
    GET    /api/export               ZIP of every completed job
    GET    /api/health               liveness + storage backend name

Errors derived from `ConverterError` map to their own status code and JSON
payload. FastAPI request validation errors are translated into that taxonomy
first; anything else becomes a 500 with the exception message.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from .config import Settings, get_settings
from .errors import (
    ConverterError,
    InvalidRequestError,
    JobNotFoundError,
    NoFileUploadedError,
    NothingToExportError,
)
from .export import build_zip_bundle, bundle_file_name, converted_file_name, dump_json
from .service import ConversionService
from .storage import JobStorage, build_storage

logger = logging.getLogger(__name__)


def _attachment(filename: str) -> Dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


def request_error_to_converter_error(exc: RequestValidationError) -> ConverterError:
    """Translate FastAPI parameter errors into the converter's error taxonomy.

    A job id that is not an integer cannot name a job, so it is a 404. A
    `file` form field that is not a file part counts as no file at all.
    """
    for err in exc.errors():
        loc = tuple(err.get("loc") or ())
        if loc[:2] == ("path", "job_id"):
            return JobNotFoundError(err.get("input"))
        if loc[:2] == ("body", "file"):
            return NoFileUploadedError()
    return InvalidRequestError(str(exc.errors()))


def get_service(request: Request) -> ConversionService:
    return request.app.state.service


def create_app(
    storage: Optional[JobStorage] = None, settings: Optional[Settings] = None
) -> FastAPI:
    """Build the FastAPI application around a job store.

    Args:
        storage: Job store to use; built from `settings` when omitted.
        settings: Configuration; defaults to `get_settings()`.
    """
    if storage is None:
        storage = build_storage(settings or get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await storage.setup()
        logger.info("Converter API ready (storage=%s)", storage.name)
        yield

    app = FastAPI(title="Telemetry Data Converter", lifespan=lifespan)
    app.state.service = ConversionService(storage)

    @app.exception_handler(ConverterError)
    async def _converter_error(request: Request, exc: ConverterError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s -> %s", request.method, request.url.path, exc.message)
        else:
            logger.warning("%s %s -> %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def _request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return await _converter_error(request, request_error_to_converter_error(exc))

    @app.exception_handler(Exception)
    async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"message": str(exc) or "Internal server error"})

    @app.post("/api/convert")
    async def convert(
        file: Optional[UploadFile] = File(None),
        service: ConversionService = Depends(get_service),
    ) -> Dict[str, Any]:
        content = await file.read() if file is not None else None
        file_name = (file.filename if file is not None else None) or "upload.json"
        outcome = await service.convert_upload(file_name, content)
        return outcome.to_payload()

    @app.get("/api/jobs")
    async def list_jobs(service: ConversionService = Depends(get_service)) -> List[Dict[str, Any]]:
        jobs = await service.list_jobs()
        return [j.model_dump(mode="json", by_alias=True) for j in jobs]

    @app.get("/api/jobs/{job_id}")
    async def get_job(job_id: int, service: ConversionService = Depends(get_service)) -> Dict[str, Any]:
        job = await service.get_job(job_id)
        return job.model_dump(mode="json", by_alias=True)

    @app.delete("/api/jobs/{job_id}")
    async def delete_job(job_id: int, service: ConversionService = Depends(get_service)) -> Dict[str, Any]:
        await service.delete_job(job_id)
        return {"success": True}

    @app.get("/api/jobs/{job_id}/download")
    async def download_job(job_id: int, service: ConversionService = Depends(get_service)) -> Response:
        job = await service.get_converted(job_id)
        return Response(
            content=dump_json(job.converted_data),
            media_type="application/json",
            headers=_attachment(converted_file_name(job.file_name)),
        )

    @app.get("/api/export")
    async def export_all(service: ConversionService = Depends(get_service)) -> Response:
        jobs = await service.completed_jobs()
        if not jobs:
            raise NothingToExportError()
        return Response(
            content=build_zip_bundle(jobs),
            media_type="application/zip",
            headers=_attachment(bundle_file_name()),
        )

    @app.get("/api/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok", "storage": storage.name}

    return app


__all__ = ["create_app", "get_service", "request_error_to_converter_error"]
