from __future__ import annotations

import io
import json
import zipfile

import pytest
from fastapi.testclient import TestClient

from telemetry_converter.api import create_app
from telemetry_converter.storage import MemoryStorage


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def client(storage):
    with TestClient(create_app(storage=storage)) as c:
        yield c


def _upload(client: TestClient, doc, name: str = "data.json"):
    body = doc if isinstance(doc, bytes) else json.dumps(doc).encode("utf-8")
    return client.post("/api/convert", files={"file": (name, body, "application/json")})


def test_convert_iso_upload(client, iso_document):
    resp = _upload(client, iso_document, "iso.json")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "completed"
    assert body["originalFormat"] == "iso"
    assert body["convertedData"]["telemetry"][0]["timestamp"] == 1704067200000
    assert body["convertedData"]["deviceId"] == "sensor-7"

    job = client.get(f"/api/jobs/{body['jobId']}").json()
    assert job["fileName"] == "iso.json"
    assert job["status"] == "completed"
    assert job["errorMessage"] is None
    assert job["timestampFormat"] == "iso"
    assert len(job["convertedData"]["telemetry"]) == len(job["originalData"]["telemetry"])


def test_missing_file_is_400(client):
    resp = client.post("/api/convert")
    assert resp.status_code == 400
    assert resp.json() == {"message": "No file uploaded"}


def test_invalid_json_is_400(client):
    resp = _upload(client, b"{not json")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid JSON format"


def test_schema_violation_lists_errors(client, storage):
    resp = _upload(client, {"telemetry": [{"timestamp": "2024-01-01T00:00:00Z"}, {}]})
    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Invalid telemetry data structure"
    assert body["errors"] == ["Telemetry entry 1 must have a timestamp"]
    assert client.get("/api/jobs").json() == []


def test_unknown_format_is_500_with_failed_job(client):
    resp = _upload(client, {"telemetry": [{"timestamp": "2024-01-01"}]}, "dates.json")
    assert resp.status_code == 500
    body = resp.json()
    assert body["status"] == "failed"
    assert body["message"] == "Unknown timestamp format"
    job = client.get(f"/api/jobs/{body['jobId']}").json()
    assert job["status"] == "failed"
    assert job["errorMessage"] == "Unknown timestamp format"
    assert job["convertedData"] is None


def test_list_get_delete(client, ms_document):
    first = _upload(client, ms_document, "a.json").json()["jobId"]
    second = _upload(client, ms_document, "b.json").json()["jobId"]
    assert [j["id"] for j in client.get("/api/jobs").json()] == [first, second]

    assert client.delete(f"/api/jobs/{first}").json() == {"success": True}
    assert client.get(f"/api/jobs/{first}").status_code == 404
    missing = client.delete(f"/api/jobs/{first}")
    assert missing.status_code == 404
    assert missing.json() == {"message": "Job not found"}
    assert [j["id"] for j in client.get("/api/jobs").json()] == [second]


def test_download_single_job(client, iso_document):
    job_id = _upload(client, iso_document, "iso.json").json()["jobId"]
    resp = client.get(f"/api/jobs/{job_id}/download")
    assert resp.status_code == 200
    assert 'filename="converted-iso.json"' in resp.headers["content-disposition"]
    assert json.loads(resp.content)["telemetry"][1]["timestamp"] == 1704067201250


def test_download_failed_job_is_409(client):
    job_id = _upload(client, {"telemetry": [{"timestamp": "x"}]}).json()["jobId"]
    assert client.get(f"/api/jobs/{job_id}/download").status_code == 409


def test_export_zip(client, iso_document, ms_document):
    assert client.get("/api/export").status_code == 404
    _upload(client, iso_document, "iso.json")
    _upload(client, ms_document, "ms.json")
    _upload(client, {"telemetry": [{"timestamp": "nope"}]}, "bad.json")
    resp = client.get("/api/export")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/zip"
    assert "converted-telemetry-data-" in resp.headers["content-disposition"]
    with zipfile.ZipFile(io.BytesIO(resp.content)) as zf:
        assert sorted(zf.namelist()) == ["converted-iso.json", "converted-ms.json"]


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok", "storage": "memory"}


def test_internal_errors_pass_message_through(storage):
    async def broken():
        raise RuntimeError("database unavailable")

    storage.list_jobs = broken  # type: ignore[method-assign]
    with TestClient(create_app(storage=storage), raise_server_exceptions=False) as c:
        resp = c.get("/api/jobs")
    assert resp.status_code == 500
    assert resp.json() == {"message": "database unavailable"}


def test_non_file_form_field_counts_as_no_file(client):
    resp = client.post("/api/convert", data={"file": "not a file"})
    assert resp.status_code == 400
    assert resp.json() == {"message": "No file uploaded"}


@pytest.mark.parametrize(
    "method, path",
    [
        ("GET", "/api/jobs/abc"),
        ("DELETE", "/api/jobs/abc"),
        ("GET", "/api/jobs/1.5/download"),
    ],
)
def test_non_integer_job_id_is_not_found(client, method, path):
    resp = client.request(method, path)
    assert resp.status_code == 404
    assert resp.json() == {"message": "Job not found"}


def test_deeply_nested_upload_is_invalid_json(client):
    resp = _upload(client, b"[" * 100000 + b"]" * 100000)
    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid JSON format"}
    assert client.get("/api/jobs").json() == []


def test_nul_character_upload_is_invalid_json(client):
    body = b'{"telemetry": [{"timestamp": "2024-01-01T00:00:00Z", "note": "a\\u0000b"}]}'
    resp = _upload(client, body)
    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid JSON format"}


def test_mixed_document_keeps_numeric_timestamps(client):
    doc = {"telemetry": [{"timestamp": "2024-01-01T00:00:00Z"}, {"timestamp": 1704067201000}]}
    body = _upload(client, doc).json()
    assert body["originalFormat"] == "iso"
    assert [e["timestamp"] for e in body["convertedData"]["telemetry"]] == [1704067200000, 1704067201000]
