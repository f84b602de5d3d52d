"""HTTP client for the converter API, used by the CLI.

Thin wrapper over `httpx.Client`. Non-2xx responses raise `ApiError` carrying
the status code and the server's `message` so the CLI can print it.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

JSON_MIME = "application/json"


class ApiError(RuntimeError):
    def __init__(self, status_code: int, message: str, payload: Optional[Any] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload


def _filename_from_disposition(header: Optional[str], default: str) -> str:
    if not header:
        return default
    for part in header.split(";"):
        part = part.strip()
        if part.startswith("filename="):
            return part[len("filename="):].strip('"') or default
    return default


class ConverterClient:
    """Synchronous client for the `/api` routes."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        http: Optional[httpx.Client] = None,
    ):
        # `http` lets callers supply a preconfigured client (e.g. an ASGI test client)
        self._http = http or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ConverterClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise ApiError(0, f"request failed: {e}") from e
        logger.debug("%s %s -> %s", method, url, resp.status_code)
        return self._check(resp)

    def _check(self, resp: httpx.Response) -> httpx.Response:
        if resp.status_code < 400:
            return resp
        payload: Any = None
        message = resp.text[:500]
        try:
            payload = resp.json()
            if isinstance(payload, dict) and payload.get("message"):
                message = str(payload["message"])
        except ValueError:
            pass
        raise ApiError(resp.status_code, message, payload)

    def convert_file(self, path: Path) -> Dict[str, Any]:
        with path.open("rb") as fh:
            resp = self._request("POST", "/api/convert", files={"file": (path.name, fh, JSON_MIME)})
        return resp.json()

    def list_jobs(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/jobs").json()

    def get_job(self, job_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/api/jobs/{job_id}").json()

    def delete_job(self, job_id: int) -> None:
        self._request("DELETE", f"/api/jobs/{job_id}")

    def download_job(self, job_id: int) -> Tuple[str, bytes]:
        resp = self._request("GET", f"/api/jobs/{job_id}/download")
        name = _filename_from_disposition(
            resp.headers.get("content-disposition"), f"converted-job-{job_id}.json"
        )
        return name, resp.content

    def download_bundle(self) -> Tuple[str, bytes]:
        resp = self._request("GET", "/api/export")
        name = _filename_from_disposition(
            resp.headers.get("content-disposition"), "converted-telemetry-data.zip"
        )
        return name, resp.content


__all__ = ["ApiError", "ConverterClient"]
