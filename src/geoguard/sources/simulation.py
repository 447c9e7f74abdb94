"""Simulation driver.

Generates synthetic position samples for three scripted motion patterns
when no live device is connected. The driver is stepped by a fixed-rate
tick owned by the monitor; each step advances ``progress`` by
``config.sim_step`` and yields one sample.
"""

from __future__ import annotations

import logging
import math
import random
import time
from collections.abc import Callable, Iterable, Sequence

from geoguard._constants import KM_PER_DEGREE_LAT, MAX_SIM_SPEED_KMH
from geoguard.config import MonitorConfig
from geoguard.exceptions import SimulationError
from geoguard.models.position import PositionSample
from geoguard.models.simulation import SimulationKind, SimulationState
from geoguard.models.zones import Route

_logger = logging.getLogger(__name__)

#: Kinds that wrap their progress instead of finishing at 1.0.
LOOPING_KINDS: frozenset[SimulationKind] = frozenset(
    {SimulationKind.ROUTE, SimulationKind.INTRUSION, SimulationKind.STATIC}
)


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


def _wrap_longitude(longitude: float) -> float:
    if -180.0 <= longitude <= 180.0:
        return longitude
    return ((longitude + 180.0) % 360.0) - 180.0


def interpolate_route(points: Sequence[tuple[float, float]], progress: float) -> tuple[float, float]:
    """Map *progress* onto a polyline by linear interpolation.

    ``progress`` is taken modulo 1 and spread evenly over the segments, so
    every segment takes the same share of a lap regardless of its length.
    """
    if not points:
        raise ValueError("route has no points")
    total = len(points)
    if total == 1:
        return points[0]

    loop_progress = progress % 1
    scaled = loop_progress * (total - 1)
    index = math.floor(scaled)
    next_index = min(index + 1, total - 1)
    local = scaled - index

    lat1, lon1 = points[index]
    lat2, lon2 = points[next_index]
    return (lat1 + (lat2 - lat1) * local, lon1 + (lon2 - lon1) * local)


def intrusion_displacement_deg(
    speed_kmh: float,
    direction_deg: float,
    *,
    step_seconds: float,
    scale_factor: float,
) -> tuple[float, float]:
    """Return ``(d_lat, d_lon)`` for one intrusion step.

    Flat-plane approximation: 0 deg is North and bearings grow clockwise.
    """
    step = (speed_kmh / KM_PER_DEGREE_LAT / 3600) * step_seconds * scale_factor
    radians = math.radians(direction_deg)
    return (step * math.cos(radians), step * math.sin(radians))


class SimulationDriver:
    """Stateful generator of simulated samples."""

    def __init__(
        self,
        config: MonitorConfig,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._config = config
        self._rng = rng or random.Random()
        self._clock = clock or _now_ms
        self._state = SimulationState.idle()
        self._anchor: tuple[float, float] | None = None
        self._position: tuple[float, float] | None = None
        self._speed_kmh = 0.0

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state.active

    @property
    def anchor(self) -> tuple[float, float] | None:
        return self._anchor

    @property
    def position(self) -> tuple[float, float] | None:
        """Last emitted ``(lat, lon)``, or the anchor before the first step."""
        return self._position

    def start(
        self,
        kind: SimulationKind | str,
        *,
        anchor: tuple[float, float],
        direction_deg: float | None = None,
        speed_kmh: float | None = None,
    ) -> SimulationState:
        """Begin a simulation from *anchor*, replacing any running one.

        Raises
        ------
        SimulationError
            For an unknown kind or an out-of-range heading or speed.
        """
        try:
            kind = SimulationKind(kind)
        except ValueError as exc:
            raise SimulationError(f"Unknown simulation kind: {kind!r}") from exc

        if kind == SimulationKind.INTRUSION:
            direction_deg = self._config.default_direction_deg if direction_deg is None else direction_deg
            speed_kmh = self._config.default_speed_kmh if speed_kmh is None else speed_kmh
        if direction_deg is not None and not 0 <= direction_deg <= 360:
            raise SimulationError(f"direction_deg must be within [0, 360], got {direction_deg}")
        if speed_kmh is not None and not 0 <= speed_kmh <= MAX_SIM_SPEED_KMH:
            raise SimulationError(f"speed_kmh must be within [0, {MAX_SIM_SPEED_KMH:g}], got {speed_kmh}")

        self._anchor = anchor
        self._position = anchor
        self._speed_kmh = 0.0
        self._state = SimulationState(
            active=True,
            kind=kind,
            progress=0.0,
            direction_deg=direction_deg,
            speed_kmh=speed_kmh,
        )
        _logger.debug(
            "Simulation started: kind=%s anchor=%s direction=%s speed=%s",
            kind,
            anchor,
            direction_deg,
            speed_kmh,
        )
        return self._state

    def stop(self) -> None:
        if self._state.active:
            _logger.debug("Simulation stopped: kind=%s", self._state.kind)
        self._state = SimulationState.idle()

    def step(self, routes: Iterable[Route] = ()) -> PositionSample | None:
        """Advance one tick and return the new sample.

        Returns ``None`` when the simulation is inactive, or when a
        non-looping kind has just run to completion.
        """
        state = self._state
        if not state.active or state.kind is None or self._position is None:
            return None

        new_progress = state.progress + self._config.sim_step
        if new_progress >= 1.0 and state.kind not in LOOPING_KINDS:
            _logger.debug("Simulation completed: kind=%s", state.kind)
            self.stop()
            return None

        if state.kind == SimulationKind.STATIC:
            latitude, longitude, speed = self._static_step()
        elif state.kind == SimulationKind.INTRUSION:
            latitude, longitude, speed = self._intrusion_step(state)
        elif state.kind == SimulationKind.ROUTE:
            latitude, longitude, speed = self._route_step(new_progress, routes)
        else:  # pragma: no cover - guarded by SimulationKind
            raise SimulationError(f"Unhandled simulation kind: {state.kind}")

        latitude = max(-90.0, min(90.0, latitude))
        longitude = _wrap_longitude(longitude)
        self._position = (latitude, longitude)
        self._speed_kmh = speed
        self._state = state.model_copy(update={"progress": new_progress if new_progress < 1.0 else 0.0})

        return PositionSample(
            latitude=latitude,
            longitude=longitude,
            speed_kmh=speed,
            valid=True,
            timestamp_ms=self._clock(),
        )

    # ------------------------------------------------------------------
    # Per-kind motion
    # ------------------------------------------------------------------

    def _static_step(self) -> tuple[float, float, float]:
        assert self._anchor is not None  # noqa: S101
        jitter = self._config.static_jitter_deg
        latitude = self._anchor[0] + (self._rng.random() - 0.5) * jitter
        longitude = self._anchor[1] + (self._rng.random() - 0.5) * jitter
        return latitude, longitude, 0.0

    def _intrusion_step(self, state: SimulationState) -> tuple[float, float, float]:
        assert self._position is not None  # noqa: S101
        latitude, longitude = self._position
        speed = state.speed_kmh or 0.0
        if speed == 0:
            return latitude, longitude, 0.0
        d_lat, d_lon = intrusion_displacement_deg(
            speed,
            state.direction_deg or 0.0,
            step_seconds=self._config.intrusion_step_seconds,
            scale_factor=self._config.sim_scale_factor,
        )
        return latitude + d_lat, longitude + d_lon, speed

    def _route_step(self, progress: float, routes: Iterable[Route]) -> tuple[float, float, float]:
        assert self._position is not None  # noqa: S101
        route = next((r for r in routes if r.is_monitored), None)
        if route is None:
            _logger.debug("Route simulation has no monitored route; holding position")
            return self._position[0], self._position[1], self._speed_kmh

        latitude, longitude = interpolate_route(route.coordinates(), progress)
        low, high = self._config.route_speed_band_kmh
        speed = float(round(low + self._rng.random() * (high - low)))
        return latitude, longitude, speed
