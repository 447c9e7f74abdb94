"""Condition applicability policy.

Decides which debounced rules apply to the current source. Kept apart
from the state machine so the machine only deals with facts and time.
"""

from __future__ import annotations

from geoguard.models.simulation import SimulationKind
from geoguard.state.events import SourceKind


def stay_long_applies(
    *,
    source: SourceKind,
    simulation_kind: SimulationKind | None,
    any_source: bool,
) -> bool:
    """Whether the stay-long rule is evaluated for the current source.

    By default it only runs while the static simulation drives samples.
    ``any_source`` lifts that restriction for live devices and the other
    simulation kinds.
    """
    if any_source:
        return True
    return source == SourceKind.SIMULATION and simulation_kind == SimulationKind.STATIC


def deadline_elapsed(now_ms: int, deadline_ms: int | None) -> bool:
    return deadline_ms is not None and now_ms >= deadline_ms
