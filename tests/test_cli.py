from __future__ import annotations

import io
import json
import zipfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from typer.testing import CliRunner

import telemetry_converter.__main__ as cli
from telemetry_converter.api import create_app
from telemetry_converter.client import ConverterClient
from telemetry_converter.storage import MemoryStorage

runner = CliRunner()


def _write(tmp_path: Path, name: str, doc) -> Path:
    path = tmp_path / name
    path.write_text(doc if isinstance(doc, str) else json.dumps(doc), encoding="utf-8")
    return path


@pytest.fixture
def api(monkeypatch):
    app = create_app(storage=MemoryStorage())
    monkeypatch.setattr(
        cli, "_make_client", lambda api_url: ConverterClient("http://testserver", http=TestClient(app))
    )
    return app


def test_detect_labels_each_file(tmp_path, iso_document, ms_document):
    iso = _write(tmp_path, "iso.json", iso_document)
    ms = _write(tmp_path, "ms.json", ms_document)
    broken = _write(tmp_path, "broken.json", "{")
    result = runner.invoke(cli.app, ["detect", str(iso), str(ms), str(broken)])
    assert result.exit_code == 0, result.output
    assert "iso.json: ISO format" in result.output
    assert "ms.json: Milliseconds format" in result.output
    assert "broken.json: Invalid JSON" in result.output


def test_preview_converted(tmp_path, iso_document):
    path = _write(tmp_path, "iso.json", iso_document)
    result = runner.invoke(cli.app, ["preview", str(path), "--mode", "converted"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["telemetry"][0]["timestamp"] == 1704067200000


def test_preview_unknown_format_fails(tmp_path):
    path = _write(tmp_path, "d.json", {"telemetry": [{"timestamp": "2024-01-01"}]})
    result = runner.invoke(cli.app, ["preview", str(path), "--mode", "converted"])
    assert result.exit_code == 1


def test_convert_then_list_download_and_bundle(api, tmp_path, iso_document):
    iso = _write(tmp_path, "iso.json", iso_document)
    notes = _write(tmp_path, "notes.txt", "hello")
    result = runner.invoke(cli.app, ["convert", str(iso), str(notes)])
    assert result.exit_code == 0, result.output
    assert "OK iso.json: job #1 converted from iso format (3 entries)" in result.output
    assert "Skipping notes.txt" in result.output

    listing = runner.invoke(cli.app, ["jobs"])
    assert "#1 iso.json [completed]" in listing.output
    assert "Completed 1/1" in listing.output

    out = tmp_path / "out"
    dl = runner.invoke(cli.app, ["download", "1", "--out", str(out)])
    assert dl.exit_code == 0, dl.output
    saved = json.loads((out / "converted-iso.json").read_text(encoding="utf-8"))
    assert saved["telemetry"][2]["timestamp"] == 1704067200000

    bd = runner.invoke(cli.app, ["bundle", "--out", str(out)])
    assert bd.exit_code == 0, bd.output
    (archive,) = out.glob("converted-telemetry-data-*.zip")
    with zipfile.ZipFile(io.BytesIO(archive.read_bytes())) as zf:
        assert zf.namelist() == ["converted-iso.json"]


def test_convert_reports_validation_errors(api, tmp_path):
    bad = _write(tmp_path, "bad.json", {"telemetry": [{}]})
    result = runner.invoke(cli.app, ["convert", str(bad)])
    assert result.exit_code == 1
    assert "Invalid telemetry data structure" in result.output
    assert "Telemetry entry 0 must have a timestamp" in result.output


def test_delete_missing_job(api):
    result = runner.invoke(cli.app, ["delete", "7"])
    assert result.exit_code == 1
    assert "Job not found" in result.output
