"""Safe zone and route models.

These are snapshots owned by the surrounding application. The engine reads
them and never mutates or persists them.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from geoguard.models._base import GeoBaseModel


class SafeZone(GeoBaseModel):
    """Circular safety region."""

    id: str
    name: str = ""
    latitude: float = Field(..., ge=-90, le=90, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(..., ge=-180, le=180, validation_alias=AliasChoices("longitude", "lng", "lon"))
    radius_m: float = Field(..., gt=0, validation_alias=AliasChoices("radius_m", "radiusM", "radius"))
    active: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)


class RoutePoint(GeoBaseModel):
    latitude: float = Field(..., ge=-90, le=90, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(..., ge=-180, le=180, validation_alias=AliasChoices("longitude", "lng", "lon"))

    def as_tuple(self) -> tuple[float, float]:
        """Return ``(lat, lon)``."""
        return (self.latitude, self.longitude)


class Route(GeoBaseModel):
    """Ordered polyline the device is expected to follow.

    ``confirmed=False`` means the route is still being edited and is never
    evaluated. A route with fewer than two points is inert.
    """

    id: str
    name: str = ""
    points: tuple[RoutePoint, ...] = ()
    confirmed: bool = False
    active: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("points", mode="before")
    @classmethod
    def _coerce_points(cls, value: Any) -> Any:
        # Accept bare (lat, lon) pairs next to point dicts.
        if not isinstance(value, (list, tuple)):
            return value
        coerced: list[Any] = []
        for item in value:
            if isinstance(item, (list, tuple)) and len(item) == 2:
                coerced.append({"latitude": item[0], "longitude": item[1]})
            else:
                coerced.append(item)
        return tuple(coerced)

    @property
    def is_monitored(self) -> bool:
        """Whether the route takes part in deviation checks."""
        return self.active and self.confirmed and len(self.points) >= 2

    def coordinates(self) -> list[tuple[float, float]]:
        """Return the points as ``(lat, lon)`` pairs."""
        return [point.as_tuple() for point in self.points]
