"""Normalization helpers.

Centralizes defensive parsing of device payloads and coordinate checks.
"""

from __future__ import annotations

import math
from typing import Any

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off"})


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_bool(value: Any, default: bool = False) -> bool:
    """Interpret device flags that arrive as bools, ints or strings."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    return default


def is_valid_latitude(value: float | None) -> bool:
    return value is not None and math.isfinite(value) and -90.0 <= value <= 90.0


def is_valid_longitude(value: float | None) -> bool:
    return value is not None and math.isfinite(value) and -180.0 <= value <= 180.0


def is_zero_sentinel(latitude: float, longitude: float) -> bool:
    """Return ``True`` for the ``(0, 0)`` position devices report before a fix."""
    return latitude == 0.0 and longitude == 0.0


def sample_rejection_reason(latitude: float | None, longitude: float | None) -> str | None:
    """Explain why a coordinate pair cannot be evaluated, or ``None`` if it can."""
    if latitude is None or longitude is None:
        return "missing coordinates"
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return "non-finite coordinates"
    if not is_valid_latitude(latitude):
        return f"latitude out of range: {latitude}"
    if not is_valid_longitude(longitude):
        return f"longitude out of range: {longitude}"
    if is_zero_sentinel(latitude, longitude):
        return "zero sentinel coordinates"
    return None
