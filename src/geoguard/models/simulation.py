"""Simulation state model."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from geoguard._constants import MAX_SIM_SPEED_KMH
from geoguard.models._base import GeoBaseModel


class SimulationKind(StrEnum):
    """Scripted motion patterns the simulation driver can generate."""

    ROUTE = "route"
    INTRUSION = "intrusion"
    STATIC = "static"


class SimulationState(GeoBaseModel):
    """Progress of the running simulation.

    ``progress`` counts towards 1.0 one step at a time. Looping kinds wrap
    back to 0; any other kind stops once it reaches 1.0.
    """

    active: bool = False
    kind: SimulationKind | None = None
    progress: float = Field(default=0.0, ge=0, le=1)
    direction_deg: float | None = Field(default=None, ge=0, le=360)
    speed_kmh: float | None = Field(default=None, ge=0, le=MAX_SIM_SPEED_KMH)

    @classmethod
    def idle(cls) -> SimulationState:
        return cls()
