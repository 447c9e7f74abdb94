"""geoguard - Async geofence and route-deviation monitoring engine."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pygeoguard")
except PackageNotFoundError:
    __version__ = "0+local"
from geoguard.config import MonitorConfig
from geoguard.exceptions import (
    GeoguardConfigError,
    GeoguardError,
    InvalidSampleError,
    SimulationError,
    SourceError,
    SourceUnavailableError,
)
from geoguard.models import (
    PositionSample,
    RawSample,
    Route,
    RoutePoint,
    SafeZone,
    SimulationKind,
    SimulationState,
)
from geoguard.monitor import GeofenceMonitor
from geoguard.notify import AlertNotifier, LoggingNotifier, build_alert_payload
from geoguard.rules import RuleFacts, evaluate
from geoguard.state.episodes import AlertStateMachine
from geoguard.state.events import AlertCleared, AlertCondition, AlertEvent, AlertRaised, SourceKind

__all__ = [
    "__version__",
    "AlertCleared",
    "AlertCondition",
    "AlertEvent",
    "AlertNotifier",
    "AlertRaised",
    "AlertStateMachine",
    "GeofenceMonitor",
    "GeoguardConfigError",
    "GeoguardError",
    "InvalidSampleError",
    "LoggingNotifier",
    "MonitorConfig",
    "PositionSample",
    "RawSample",
    "Route",
    "RoutePoint",
    "RuleFacts",
    "SafeZone",
    "SimulationError",
    "SimulationKind",
    "SimulationState",
    "SourceError",
    "SourceKind",
    "SourceUnavailableError",
    "build_alert_payload",
    "evaluate",
]
