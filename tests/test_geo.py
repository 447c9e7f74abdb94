from __future__ import annotations

import math

import pytest

from geoguard.geo import distance_to_segment_m, great_circle_distance_m, is_near_polyline, is_within_circle

_M_PER_DEG = 6_371_000.0 * math.pi / 180.0


def test_distance_to_same_point_is_zero() -> None:
    assert great_circle_distance_m(10.9589, 106.8554, 10.9589, 106.8554) == 0.0


def test_one_degree_of_latitude() -> None:
    assert great_circle_distance_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(_M_PER_DEG, rel=1e-9)


def test_distance_is_symmetric() -> None:
    forward = great_circle_distance_m(10.0, 106.0, 11.0, 107.5)
    backward = great_circle_distance_m(11.0, 107.5, 10.0, 106.0)
    assert forward == pytest.approx(backward)


def test_antipodal_points_do_not_blow_up() -> None:
    assert great_circle_distance_m(0.0, 0.0, 0.0, 180.0) == pytest.approx(math.pi * 6_371_000.0)


def test_point_500m_away_is_outside_200m_zone() -> None:
    lat = 10.9589 + 500 / _M_PER_DEG
    assert not is_within_circle(lat, 106.8554, 10.9589, 106.8554, 200)
    assert is_within_circle(10.9589, 106.8554, 10.9589, 106.8554, 200)


def test_circle_boundary_is_inside() -> None:
    lat = 10.9589 + 100 / _M_PER_DEG
    distance = great_circle_distance_m(lat, 106.8554, 10.9589, 106.8554)
    assert is_within_circle(lat, 106.8554, 10.9589, 106.8554, distance)


def test_segment_distance_midpoint_offset() -> None:
    # 0.0005 deg north of the middle of an equatorial segment.
    distance = distance_to_segment_m(0.0005, 0.5, 0.0, 0.0, 0.0, 1.0)
    assert distance == pytest.approx(0.0005 * _M_PER_DEG, rel=1e-3)


def test_segment_projection_is_clamped_to_endpoints() -> None:
    distance = distance_to_segment_m(0.0, 1.01, 0.0, 0.0, 0.0, 1.0)
    assert distance == pytest.approx(0.01 * _M_PER_DEG, rel=1e-6)


def test_zero_length_segment_uses_great_circle_distance() -> None:
    distance = distance_to_segment_m(10.001, 106.0, 10.0, 106.0, 10.0, 106.0)
    assert distance == pytest.approx(great_circle_distance_m(10.001, 106.0, 10.0, 106.0))


def test_near_polyline_within_buffer() -> None:
    points = [(0.0, 0.0), (0.0, 1.0)]
    assert is_near_polyline(0.0005, 0.5, points, 100)
    assert not is_near_polyline(0.01, 0.5, points, 100)


def test_near_polyline_checks_every_segment() -> None:
    points = [(0.0, 0.0), (0.0, 0.01), (0.01, 0.01)]
    assert is_near_polyline(0.005, 0.0101, points, 50)


def test_polyline_with_fewer_than_two_points_never_matches() -> None:
    assert not is_near_polyline(0.0, 0.0, [], 100)
    assert not is_near_polyline(0.0, 0.0, [(0.0, 0.0)], 100)


def test_duplicate_route_points_are_tolerated() -> None:
    points = [(0.0, 0.0), (0.0, 0.0), (0.0, 0.01)]
    assert is_near_polyline(0.0, 0.005, points, 10)
