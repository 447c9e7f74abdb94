"""Monitor configuration for geoguard."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from geoguard._constants import (
    DEFAULT_ALERT_DELAY_MS,
    DEFAULT_BUFFER_RADIUS_M,
    DEFAULT_DEVICE_URL,
    DEFAULT_INTRUSION_DIRECTION_DEG,
    DEFAULT_INTRUSION_SPEED_KMH,
    DEFAULT_INTRUSION_STEP_SECONDS,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_ROUTE_SPEED_BAND_KMH,
    DEFAULT_SIM_SCALE_FACTOR,
    DEFAULT_SIM_STEP,
    DEFAULT_SOURCE_TIMEOUT_MS,
    DEFAULT_STATIC_JITTER_DEG,
    DEFAULT_TICK_INTERVAL_MS,
)
from geoguard.exceptions import GeoguardConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class MonitorConfig:
    """Engine configuration.

    Every field is a pass-through parameter with a documented default.

    Parameters
    ----------
    device_url : str
        Address of the live tracking device. A bare host or IP gets an
        ``http://`` prefix.
    buffer_radius_m : float
        Maximum lateral distance from a route still considered on route.
    alert_delay_ms : int
        Debounce delay for the stay-long and route-deviation conditions.
    source_timeout_ms : int
        Hard timeout of a single live device request.
    poll_interval_ms : int
        Interval between live device requests.
    tick_interval_ms : int
        Interval between simulation steps.
    sim_step : float
        Progress increment per simulation step.
    sim_scale_factor : float
        Inflates intrusion motion so it is visible at city scale.
        A tunable demo constant, not a physical unit.
    intrusion_step_seconds : float
        Time slice used by the intrusion displacement formula.
    static_jitter_deg : float
        Full span of the random jitter applied per axis in the static
        simulation.
    route_speed_band_kmh : tuple of float
        ``(low, high)`` band for the randomized speed reported while
        following a route.
    default_direction_deg : float
        Intrusion heading when none is given (0 = North, clockwise).
    default_speed_kmh : float
        Intrusion speed when none is given.
    stay_long_any_source : bool
        Evaluate the stay-long condition for every source instead of only
        during the static simulation.
    recipient : str or None
        Address handed to the notifier in alert payloads.
    """

    device_url: str = DEFAULT_DEVICE_URL
    buffer_radius_m: float = DEFAULT_BUFFER_RADIUS_M
    alert_delay_ms: int = DEFAULT_ALERT_DELAY_MS
    source_timeout_ms: int = DEFAULT_SOURCE_TIMEOUT_MS
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS
    sim_step: float = DEFAULT_SIM_STEP
    sim_scale_factor: float = DEFAULT_SIM_SCALE_FACTOR
    intrusion_step_seconds: float = DEFAULT_INTRUSION_STEP_SECONDS
    static_jitter_deg: float = DEFAULT_STATIC_JITTER_DEG
    route_speed_band_kmh: tuple[float, float] = DEFAULT_ROUTE_SPEED_BAND_KMH
    default_direction_deg: float = DEFAULT_INTRUSION_DIRECTION_DEG
    default_speed_kmh: float = DEFAULT_INTRUSION_SPEED_KMH
    stay_long_any_source: bool = False
    recipient: str | None = None

    def __post_init__(self) -> None:
        if not self.device_url.strip():
            raise GeoguardConfigError("device_url must be non-empty")
        if self.buffer_radius_m <= 0:
            raise GeoguardConfigError(f"buffer_radius_m must be positive, got {self.buffer_radius_m}")
        for name in ("alert_delay_ms", "source_timeout_ms", "poll_interval_ms", "tick_interval_ms"):
            value = getattr(self, name)
            if value <= 0:
                raise GeoguardConfigError(f"{name} must be positive, got {value}")
        if not 0 < self.sim_step <= 1:
            raise GeoguardConfigError(f"sim_step must be in (0, 1], got {self.sim_step}")
        if self.sim_scale_factor <= 0:
            raise GeoguardConfigError(f"sim_scale_factor must be positive, got {self.sim_scale_factor}")
        low, high = self.route_speed_band_kmh
        if low < 0 or high < low:
            raise GeoguardConfigError(f"route_speed_band_kmh must be an increasing non-negative pair, got {(low, high)}")

    @property
    def base_url(self) -> str:
        """Device URL including the scheme."""
        url = self.device_url.strip().rstrip("/")
        if url.startswith(("http://", "https://")):
            return url
        return f"http://{url}"

    @property
    def alert_delay_seconds(self) -> float:
        return self.alert_delay_ms / 1000.0

    @classmethod
    def from_env(cls, **overrides: Any) -> MonitorConfig:
        """Create configuration from environment variables.

        Reads the optional ``GEOGUARD_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        MonitorConfig
            Populated configuration.

        Raises
        ------
        GeoguardConfigError
            If a numeric variable cannot be parsed or a value is out of range.
        """
        env = os.environ

        _ENV_FLOAT_MAP = {
            "GEOGUARD_BUFFER_RADIUS_M": "buffer_radius_m",
            "GEOGUARD_SIM_STEP": "sim_step",
            "GEOGUARD_SIM_SCALE_FACTOR": "sim_scale_factor",
        }
        _ENV_INT_MAP = {
            "GEOGUARD_ALERT_DELAY_MS": "alert_delay_ms",
            "GEOGUARD_SOURCE_TIMEOUT_MS": "source_timeout_ms",
            "GEOGUARD_POLL_INTERVAL_MS": "poll_interval_ms",
            "GEOGUARD_TICK_INTERVAL_MS": "tick_interval_ms",
        }

        config_kwargs: dict[str, Any] = {}

        device_url = env.get("GEOGUARD_DEVICE_URL")
        if device_url is not None:
            config_kwargs["device_url"] = device_url

        recipient = env.get("GEOGUARD_RECIPIENT")
        if recipient is not None:
            config_kwargs["recipient"] = recipient

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise GeoguardConfigError(f"{env_key} must be a number, got {val!r}") from exc

        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = int(val)
                except ValueError as exc:
                    raise GeoguardConfigError(f"{env_key} must be an integer, got {val!r}") from exc

        if "stay_long_any_source" not in overrides:
            config_kwargs["stay_long_any_source"] = _env_bool(env.get("GEOGUARD_STAY_LONG_ANY_SOURCE"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
