"""Base model shared by every geoguard value type.

Every model inherits from :class:`GeoBaseModel` which provides:

* ``frozen=True`` so samples, zones and routes are immutable values that
  can be handed to any number of consumers.
* ``alias_generator=to_camel`` so camelCase dashboard keys
  (``radiusM``, ``speedKmh``) map to snake_case fields.
* A ``model_validator(mode="before")`` that strips device sentinel
  values (``""``, ``"--"``, NaN) so the field default is used.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Sentinel strings devices send for "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan"})


class GeoBaseModel(BaseModel):
    """Base for geoguard models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        """Drop sentinel values from *values*."""
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return GeoBaseModel._clean_dict(values)
