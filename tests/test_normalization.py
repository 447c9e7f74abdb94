from __future__ import annotations

import math

import pytest

from geoguard.exceptions import InvalidSampleError
from geoguard.ingestion.device import parse_raw_sample, to_position_sample
from geoguard.ingestion.normalize import safe_bool, safe_float, sample_rejection_reason
from geoguard.models import RawSample


@pytest.mark.parametrize(
    ("value", "expected"),
    [("1.5", 1.5), (2, 2.0), ("", None), ("--", None), (None, None), ("x", None), (True, None), (math.nan, None)],
)
def test_safe_float(value, expected) -> None:
    assert safe_float(value) == expected


def test_safe_bool_default_on_unknown() -> None:
    assert safe_bool("maybe", default=True) is True
    assert safe_bool(None) is False
    assert safe_bool(" Yes ") is True


@pytest.mark.parametrize(
    ("lat", "lon", "reason"),
    [
        (None, 1.0, "missing coordinates"),
        (1.0, None, "missing coordinates"),
        (math.inf, 1.0, "non-finite coordinates"),
        (91.0, 1.0, "latitude out of range: 91.0"),
        (1.0, 181.0, "longitude out of range: 181.0"),
        (0.0, 0.0, "zero sentinel coordinates"),
        (10.0, 106.0, None),
    ],
)
def test_sample_rejection_reason(lat, lon, reason) -> None:
    assert sample_rejection_reason(lat, lon) == reason


def test_zero_latitude_alone_is_a_real_position() -> None:
    assert sample_rejection_reason(0.0, 32.5) is None


def test_parse_raw_sample_requires_object() -> None:
    with pytest.raises(InvalidSampleError):
        parse_raw_sample(["lat", 1])


def test_to_position_sample_stamps_time() -> None:
    raw = parse_raw_sample({"lat": 10.9589, "lng": 106.8554, "speed": 20})
    sample = to_position_sample(raw, 1234)
    assert sample.timestamp_ms == 1234
    assert sample.speed_kmh == 20


def test_to_position_sample_defaults_missing_speed() -> None:
    sample = to_position_sample(RawSample.model_validate({"lat": 1.0, "lng": 2.0}), 0)
    assert sample.speed_kmh == 0.0


def test_to_position_sample_rejects_zero_sentinel() -> None:
    with pytest.raises(InvalidSampleError) as info:
        to_position_sample(RawSample.model_validate({"lat": 0, "lng": 0}), 0)
    assert info.value.reason == "zero sentinel coordinates"


def test_invalid_fix_is_still_converted() -> None:
    sample = to_position_sample(RawSample.model_validate({"lat": 1.0, "lng": 2.0, "valid": False}), 0)
    assert sample.valid is False
