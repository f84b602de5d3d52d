from __future__ import annotations

from datetime import datetime, timezone

from telemetry_converter.conversion import epoch_ms_to_dt, iso_to_epoch_ms, number_to_epoch_ms
from telemetry_converter.conversion.time_utils import MAX_EPOCH_MS


def test_utc_z_suffix():
    assert iso_to_epoch_ms("2024-01-01T00:00:00Z") == 1704067200000


def test_offset_is_applied():
    assert iso_to_epoch_ms("2024-01-01T01:00:00+01:00") == 1704067200000


def test_naive_string_is_treated_as_utc():
    assert iso_to_epoch_ms("2024-01-01T00:00:00") == 1704067200000


def test_sub_millisecond_precision_is_floored():
    assert iso_to_epoch_ms("2024-01-01T00:00:00.123999Z") == 1704067200123


def test_pre_epoch_value_is_negative():
    assert iso_to_epoch_ms("1969-12-31T23:59:59Z") == -1000


def test_malformed_string_returns_none():
    assert iso_to_epoch_ms("not-a-dateTtime") is None
    assert iso_to_epoch_ms("2024-13-45T99:00:00Z") is None
    assert iso_to_epoch_ms("") is None


def test_epoch_ms_to_dt_is_utc_aware():
    dt = epoch_ms_to_dt(1704067200000)
    assert dt == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert dt.tzinfo is not None


def test_numbers_are_truncated_toward_zero():
    assert number_to_epoch_ms(1704067200000) == 1704067200000
    assert number_to_epoch_ms(1704067200000.75) == 1704067200000
    assert number_to_epoch_ms(-0.5) == 0
    assert number_to_epoch_ms(MAX_EPOCH_MS) == MAX_EPOCH_MS


def test_out_of_range_numbers_return_none():
    assert number_to_epoch_ms(float("nan")) is None
    assert number_to_epoch_ms(float("inf")) is None
    assert number_to_epoch_ms(MAX_EPOCH_MS + 1) is None
    assert number_to_epoch_ms(10**400) is None
