"""Alert events emitted by the state machine.

These are the only values the engine sends to its notification
collaborator. The engine never retries delivery.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class AlertCondition(StrEnum):
    OUT_OF_ZONE = "out_of_zone"
    STAY_LONG_OUT_OF_ZONE = "stay_long_out_of_zone"
    ROUTE_DEVIATION = "route_deviation"
    HARDWARE_ALARM = "hardware_alarm"


#: Conditions tracked as debounce-free or debounced episodes.
EPISODE_CONDITIONS: tuple[AlertCondition, ...] = (
    AlertCondition.OUT_OF_ZONE,
    AlertCondition.STAY_LONG_OUT_OF_ZONE,
    AlertCondition.ROUTE_DEVIATION,
)

DEBOUNCED_CONDITIONS: tuple[AlertCondition, ...] = (
    AlertCondition.STAY_LONG_OUT_OF_ZONE,
    AlertCondition.ROUTE_DEVIATION,
)


class SourceKind(StrEnum):
    """Which source currently supplies samples."""

    NONE = "none"
    LIVE = "live"
    SIMULATION = "simulation"


class AlertRaised(BaseModel):
    """A condition entered its violating state (or its debounce elapsed)."""

    model_config = ConfigDict(frozen=True)

    condition: AlertCondition
    latitude: float
    longitude: float
    note: str = ""
    raised_at_ms: int = Field(default=0, ge=0)


class AlertCleared(BaseModel):
    """The device returned to the safe state for a condition."""

    model_config = ConfigDict(frozen=True)

    condition: AlertCondition
    cleared_at_ms: int = Field(default=0, ge=0)


AlertEvent = AlertRaised | AlertCleared
