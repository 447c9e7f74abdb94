"""Position sources: the polled live device and the simulation driver."""

from geoguard.sources.live import LivePositionSource
from geoguard.sources.simulation import SimulationDriver, interpolate_route

__all__ = [
    "LivePositionSource",
    "SimulationDriver",
    "interpolate_route",
]
