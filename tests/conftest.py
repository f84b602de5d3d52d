import sys
from pathlib import Path

import pytest

# Ensure `src` is on sys.path for tests when not installed editable.
SRC = Path(__file__).resolve().parent.parent / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture
def iso_document():
    return {
        "deviceId": "sensor-7",
        "telemetry": [
            {"timestamp": "2024-01-01T00:00:00Z", "temperature": 21.5, "humidity": 40},
            {"timestamp": "2024-01-01T00:00:01.250Z", "temperature": 21.6, "pressure": 1013.2},
            {"timestamp": "2024-01-01T01:00:00+01:00", "status": "ok"},
        ],
    }


@pytest.fixture
def ms_document():
    return {
        "telemetry": [
            {"timestamp": 1704067200000, "temperature": 20.0},
            {"timestamp": 1704067201000, "temperature": 20.1},
        ]
    }
