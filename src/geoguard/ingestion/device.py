"""Device payload ingestion.

Converts what the live device returns into validated position samples.
The HTTP request itself lives in :mod:`geoguard.sources.live`.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from geoguard._redact import redact_for_log
from geoguard.exceptions import InvalidSampleError
from geoguard.ingestion.normalize import sample_rejection_reason
from geoguard.models.position import PositionSample, RawSample

_logger = logging.getLogger(__name__)


def parse_raw_sample(payload: Any) -> RawSample:
    """Parse a device JSON body into a :class:`RawSample`.

    Raises
    ------
    InvalidSampleError
        If the payload is not a JSON object.
    """
    if not isinstance(payload, dict):
        raise InvalidSampleError(
            f"Device payload must be a JSON object, got {type(payload).__name__}",
            reason="not an object",
        )
    _logger.debug("Device payload: %s", redact_for_log(payload))
    return RawSample.model_validate(payload)


def to_position_sample(raw: RawSample, timestamp_ms: int) -> PositionSample:
    """Validate a raw reading and stamp it with *timestamp_ms*.

    Raises
    ------
    InvalidSampleError
        For missing, non-finite, out-of-range or ``(0, 0)`` coordinates.
    """
    reason = sample_rejection_reason(raw.latitude, raw.longitude)
    if reason is not None:
        raise InvalidSampleError(f"Discarding device sample: {reason}", reason=reason)

    speed = raw.speed_kmh if raw.speed_kmh is not None and raw.speed_kmh >= 0 else 0.0
    try:
        return PositionSample(
            latitude=raw.latitude,
            longitude=raw.longitude,
            speed_kmh=speed,
            valid=raw.valid,
            timestamp_ms=timestamp_ms,
        )
    except ValidationError as exc:
        raise InvalidSampleError(f"Discarding device sample: {exc}", reason="validation failed") from exc
