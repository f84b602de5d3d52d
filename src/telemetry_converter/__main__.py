"""Main CLI entry point for the telemetry converter.

This module provides a command-line interface using Typer. It covers both
sides of the system:

1.  Server: `serve` runs the FastAPI application with uvicorn and `init-db`
    creates the PostgreSQL tables.
2.  Offline helpers: `detect` labels the timestamp encoding of local files and
    `preview` prints a file as uploaded or as it would be converted.
3.  API client: `convert` uploads files one at a time, `jobs` lists job
    status, `download` / `bundle` fetch converted results, `delete` removes a
    job.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import find_dotenv, load_dotenv

from .client import ApiError, ConverterClient
from .config import get_settings
from .conversion import (
    convert_telemetry_data,
    describe_bytes,
    detect_timestamp_format,
    validate_telemetry_data,
)
from .errors import ConverterError
from .export import dump_json, estimate_converted_kb
from .models.jobs import ConversionJob, JobStatus
from .service import parse_upload

# Load .env file if present (before any config access)
env_file = find_dotenv(usecwd=True)
if env_file:
    load_dotenv(env_file)

app = typer.Typer(help="Telemetry timestamp converter (ISO-8601 -> epoch milliseconds)")


def _setup_logging() -> None:
    logging.basicConfig(level=get_settings().LOG_LEVEL)


def _make_client(api_url: Optional[str]) -> ConverterClient:
    settings = get_settings()
    return ConverterClient(api_url or settings.API_BASE_URL, timeout=settings.HTTP_TIMEOUT)


def is_json_file(path: Path) -> bool:
    return path.suffix.lower() == ".json"


def _format_kb(size: int) -> str:
    return f"{size / 1024:.1f} KB"


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address (default API_HOST)"),
    port: Optional[int] = typer.Option(None, help="Bind port (default API_PORT)"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    from .api import create_app

    _setup_logging()
    settings = get_settings()
    uvicorn.run(
        create_app(settings=settings),
        host=host or settings.API_HOST,
        port=port or settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


@app.command("init-db")
def init_db() -> None:
    """Create the users and conversion_jobs tables in PostgreSQL."""
    from .db import PostgresStorage

    _setup_logging()
    settings = get_settings()
    if not settings.PG_DSN:
        typer.echo("PG_DSN (or DB_POSTGRESDB_* variables) must be set", err=True)
        raise typer.Exit(code=2)
    storage = PostgresStorage(
        settings.PG_DSN,
        schema=settings.DB_POSTGRESDB_SCHEMA,
        table_prefix=settings.DB_TABLE_PREFIX,
        connect_attempts=settings.DB_CONNECT_ATTEMPTS,
    )
    asyncio.run(storage.setup())
    typer.echo(f"Tables ready: {storage.users_table}, {storage.jobs_table}")


@app.command()
def detect(files: List[Path] = typer.Argument(..., exists=True, dir_okay=False)) -> None:
    """Print the detected timestamp format of each file."""
    for path in files:
        typer.echo(f"{path.name}: {describe_bytes(path.read_bytes())} ({_format_kb(path.stat().st_size)})")


@app.command()
def preview(
    file: Path = typer.Argument(..., exists=True, dir_okay=False),
    mode: str = typer.Option("original", help="original | converted"),
) -> None:
    """Print a file as uploaded or as it would look after conversion."""
    if mode not in ("original", "converted"):
        raise typer.BadParameter("mode must be 'original' or 'converted'")
    try:
        data = parse_upload(file.read_bytes())
        if mode == "converted":
            result = validate_telemetry_data(data)
            if not result.valid:
                for err in result.errors:
                    typer.echo(err, err=True)
                raise typer.Exit(code=1)
            data = convert_telemetry_data(data, detect_timestamp_format(data))
    except ConverterError as e:
        typer.echo(f"{file.name}: {e.message}", err=True)
        raise typer.Exit(code=1)
    typer.echo(dump_json(data))


@app.command()
def convert(
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False),
    api_url: Optional[str] = typer.Option(None, help="Override API_BASE_URL"),
) -> None:
    """Upload JSON files one at a time and report each conversion."""
    _setup_logging()
    json_files = [p for p in files if is_json_file(p)]
    skipped = [p for p in files if not is_json_file(p)]
    for path in skipped:
        typer.echo(f"Skipping {path.name}: only JSON files can be converted", err=True)
    failures = 0
    with _make_client(api_url) as client:
        for path in json_files:
            try:
                result = client.convert_file(path)
            except ApiError as e:
                failures += 1
                typer.echo(f"FAILED {path.name}: {e.message}", err=True)
                payload = e.payload if isinstance(e.payload, dict) else {}
                for err in payload.get("errors") or []:
                    typer.echo(f"  - {err}", err=True)
                continue
            entries = len(result.get("convertedData", {}).get("telemetry", []))
            typer.echo(
                f"OK {path.name}: job #{result['jobId']} converted from "
                f"{result['originalFormat']} format ({entries} entries)"
            )
    if failures:
        raise typer.Exit(code=1)


@app.command()
def jobs(api_url: Optional[str] = typer.Option(None, help="Override API_BASE_URL")) -> None:
    """List conversion jobs and their status."""
    try:
        with _make_client(api_url) as client:
            records = [ConversionJob.model_validate(j) for j in client.list_jobs()]
    except ApiError as e:
        typer.echo(f"Listing jobs failed: {e.message}", err=True)
        raise typer.Exit(code=1)
    if not records:
        typer.echo("No conversion jobs yet")
        return
    for job in records:
        line = f"#{job.id} {job.file_name} [{job.status.value}] format={job.timestamp_format.value}"
        if job.status is JobStatus.COMPLETED:
            line += f" entries={job.entry_count} ~{estimate_converted_kb(job)} KB"
        elif job.status is JobStatus.FAILED:
            line += f" error={job.error_message}"
        typer.echo(line)
    completed = sum(1 for j in records if j.status is JobStatus.COMPLETED)
    typer.echo(f"Completed {completed}/{len(records)}")


def _write_output(out: Path, name: str, content: bytes) -> Path:
    out.mkdir(parents=True, exist_ok=True)
    target = out / Path(name).name
    target.write_bytes(content)
    return target


@app.command()
def download(
    job_id: int,
    out: Path = typer.Option(Path("."), help="Output directory"),
    api_url: Optional[str] = typer.Option(None, help="Override API_BASE_URL"),
) -> None:
    """Save one job's converted data as `converted-<file name>`."""
    try:
        with _make_client(api_url) as client:
            name, content = client.download_job(job_id)
    except ApiError as e:
        typer.echo(f"Download failed: {e.message}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Saved {_write_output(out, name, content)}")


@app.command()
def bundle(
    out: Path = typer.Option(Path("."), help="Output directory"),
    api_url: Optional[str] = typer.Option(None, help="Override API_BASE_URL"),
) -> None:
    """Save every completed job's converted data as one ZIP archive."""
    try:
        with _make_client(api_url) as client:
            name, content = client.download_bundle()
    except ApiError as e:
        typer.echo(f"Export failed: {e.message}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Saved {_write_output(out, name, content)}")


@app.command()
def delete(
    job_id: int,
    api_url: Optional[str] = typer.Option(None, help="Override API_BASE_URL"),
) -> None:
    """Delete a conversion job."""
    try:
        with _make_client(api_url) as client:
            client.delete_job(job_id)
    except ApiError as e:
        typer.echo(f"Delete failed: {e.message}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Deleted job #{job_id}")


if __name__ == "__main__":  # pragma: no cover
    app()
