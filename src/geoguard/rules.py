"""Rule evaluation: containment and deviation facts for one sample."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from geoguard.geo import is_near_polyline, is_within_circle
from geoguard.models.position import PositionSample
from geoguard.models.zones import Route, SafeZone


@dataclass(frozen=True, slots=True)
class RuleFacts:
    """What one sample says about the configured zones and routes.

    Recomputed on every sample and carries no identity. ``has_active_zones``
    and ``has_active_routes`` tell the state machine whether a condition
    applies at all: with no zones, "out of zone" cannot fire.
    """

    inside_any_active_zone: bool = False
    near_any_active_route: bool = False
    has_active_zones: bool = False
    has_active_routes: bool = False

    @property
    def out_of_zone(self) -> bool:
        return self.has_active_zones and not self.inside_any_active_zone

    @property
    def off_route(self) -> bool:
        return self.has_active_routes and not self.near_any_active_route


def active_zones(zones: Iterable[SafeZone]) -> list[SafeZone]:
    return [zone for zone in zones if zone.active]


def monitored_routes(routes: Iterable[Route]) -> list[Route]:
    return [route for route in routes if route.is_monitored]


def evaluate(
    sample: PositionSample,
    zones: Iterable[SafeZone],
    routes: Iterable[Route],
    buffer_radius_m: float,
) -> RuleFacts:
    """Compute containment and deviation facts for *sample*.

    Pure and deterministic. Degenerate geometry (duplicate route points)
    is tolerated and yields a consistent answer.
    """
    zone_set = active_zones(zones)
    route_set = monitored_routes(routes)

    inside = any(
        is_within_circle(sample.latitude, sample.longitude, zone.latitude, zone.longitude, zone.radius_m)
        for zone in zone_set
    )
    near = any(
        is_near_polyline(sample.latitude, sample.longitude, route.coordinates(), buffer_radius_m)
        for route in route_set
    )

    return RuleFacts(
        inside_any_active_zone=inside,
        near_any_active_route=near,
        has_active_zones=bool(zone_set),
        has_active_routes=bool(route_set),
    )
