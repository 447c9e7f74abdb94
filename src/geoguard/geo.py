"""Distance and projection primitives on the sphere.

All functions take plain degrees and return metres or booleans. They hold
no state.

``distance_to_segment_m`` projects onto a local plane instead of solving
the cross-track problem on the sphere. The error is negligible for
segments up to a few kilometres, which covers hand-drawn routes; longer
segments get progressively less exact answers.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from geoguard._constants import EARTH_RADIUS_M

_M_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180.0


def great_circle_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two points, in metres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push a marginally above 1 for antipodal points.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def is_within_circle(p_lat: float, p_lon: float, c_lat: float, c_lon: float, radius_m: float) -> bool:
    """Return ``True`` when the point lies inside or on the circle."""
    return great_circle_distance_m(p_lat, p_lon, c_lat, c_lon) <= radius_m


def _project(lat: float, lon: float) -> tuple[float, float]:
    """Map degrees to approximate planar metres ``(x, y)``."""
    x = lon * _M_PER_DEGREE * math.cos(math.radians(lat))
    y = lat * _M_PER_DEGREE
    return x, y


def distance_to_segment_m(
    p_lat: float,
    p_lon: float,
    a_lat: float,
    a_lon: float,
    b_lat: float,
    b_lon: float,
) -> float:
    """Approximate distance from a point to the segment ``a``-``b``, in metres.

    Each point's longitude is scaled by the cosine of its own latitude,
    the projection parameter is clamped to ``[0, 1]`` and the Euclidean
    distance to the projected point is returned. A zero-length segment
    falls back to the haversine distance to its endpoint.
    """
    px, py = _project(p_lat, p_lon)
    ax, ay = _project(a_lat, a_lon)
    bx, by = _project(b_lat, b_lon)

    dx = bx - ax
    dy = by - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return great_circle_distance_m(p_lat, p_lon, a_lat, a_lon)

    t = ((px - ax) * dx + (py - ay) * dy) / length_sq
    t = max(0.0, min(1.0, t))

    proj_x = ax + t * dx
    proj_y = ay + t * dy
    return math.hypot(px - proj_x, py - proj_y)


def is_near_polyline(
    p_lat: float,
    p_lon: float,
    points: Sequence[tuple[float, float]],
    buffer_m: float,
) -> bool:
    """Return ``True`` when the point is within *buffer_m* of any segment.

    *points* is an ordered sequence of ``(lat, lon)`` pairs. Fewer than two
    points never match.
    """
    if len(points) < 2:
        return False
    for (a_lat, a_lon), (b_lat, b_lon) in zip(points, points[1:]):
        if distance_to_segment_m(p_lat, p_lon, a_lat, a_lon, b_lat, b_lon) <= buffer_m:
            return True
    return False
