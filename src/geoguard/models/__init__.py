"""Data models for positions, geometry and simulation."""

from geoguard.models._base import GeoBaseModel
from geoguard.models.position import PositionSample, RawSample
from geoguard.models.simulation import SimulationKind, SimulationState
from geoguard.models.zones import Route, RoutePoint, SafeZone

__all__ = [
    "GeoBaseModel",
    "PositionSample",
    "RawSample",
    "Route",
    "RoutePoint",
    "SafeZone",
    "SimulationKind",
    "SimulationState",
]
