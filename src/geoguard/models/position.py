"""Position sample models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from geoguard.ingestion.normalize import safe_bool, safe_float
from geoguard.models._base import GeoBaseModel


class PositionSample(GeoBaseModel):
    """One validated position fix.

    Immutable once created and never persisted by the engine.

    Parameters
    ----------
    latitude : float
        Latitude in degrees, ``[-90, 90]``.
    longitude : float
        Longitude in degrees, ``[-180, 180]``.
    speed_kmh : float
        Ground speed in km/h, non-negative.
    valid : bool
        Whether the device reported a valid GNSS fix.
    timestamp_ms : int
        Epoch milliseconds at which the sample was accepted.
    """

    latitude: float = Field(..., ge=-90, le=90, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(..., ge=-180, le=180, validation_alias=AliasChoices("longitude", "lng", "lon"))
    speed_kmh: float = Field(default=0.0, ge=0, validation_alias=AliasChoices("speed_kmh", "speedKmh", "speed"))
    valid: bool = True
    timestamp_ms: int = Field(default=0, ge=0, validation_alias=AliasChoices("timestamp_ms", "timestampMs", "timestamp"))

    def __str__(self) -> str:
        return f"({self.latitude:.6f}, {self.longitude:.6f})"


class RawSample(GeoBaseModel):
    """The JSON body a tracking device returns from ``/gps``.

    Numeric fields are ``None`` when the value is absent or unparseable.
    ``alarm`` is the hardware emergency button and is handled independently
    of the geofence rules.
    """

    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float | None = Field(default=None, validation_alias=AliasChoices("longitude", "lng", "lon"))
    speed_kmh: float | None = Field(default=None, validation_alias=AliasChoices("speed_kmh", "speedKmh", "speed"))
    valid: bool = True
    alarm: bool = Field(default=False, validation_alias=AliasChoices("alarm", "alarmFlag", "alarm_flag"))
    raw: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _stash_raw(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        if "raw" in values:
            return values
        merged = dict(values)
        merged["raw"] = dict(values)
        return merged

    @field_validator("latitude", "longitude", "speed_kmh", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("valid", mode="before")
    @classmethod
    def _coerce_valid(cls, value: Any) -> bool:
        return safe_bool(value, default=True)

    @field_validator("alarm", mode="before")
    @classmethod
    def _coerce_alarm(cls, value: Any) -> bool:
        return safe_bool(value, default=False)

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None
