"""
Tests for the geographic helpers.
"""

import pytest

from truk.core.geo import bounding_box, haversine_km, within_radius

MADRID = (40.4168, -3.7038)
BARCELONA = (41.3874, 2.1686)


def test_haversine_same_point_is_zero():
    assert haversine_km(*MADRID, *MADRID) == pytest.approx(0.0)


def test_haversine_madrid_barcelona():
    # Great-circle distance is about 505 km
    assert haversine_km(*MADRID, *BARCELONA) == pytest.approx(505, abs=5)


def test_haversine_is_symmetric():
    assert haversine_km(*MADRID, *BARCELONA) == pytest.approx(haversine_km(*BARCELONA, *MADRID))


def test_within_radius_requires_coordinates():
    assert within_radius(*MADRID, None, None, 1000) is False
    assert within_radius(*MADRID, 40.42, None, 1000) is False


def test_within_radius():
    assert within_radius(*MADRID, *BARCELONA, 600) is True
    assert within_radius(*MADRID, *BARCELONA, 400) is False


def test_bounding_box_at_equator():
    min_lat, max_lat, min_lng, max_lng = bounding_box(0.0, 20.0, 111.0)
    assert (min_lat, max_lat) == pytest.approx((-1.0, 1.0))
    assert (min_lng, max_lng) == pytest.approx((19.0, 21.0))


def test_bounding_box_widens_longitude_away_from_equator():
    # At 60 degrees a degree of longitude is half as wide
    min_lat, max_lat, min_lng, max_lng = bounding_box(60.0, 10.0, 111.0)
    assert (min_lat, max_lat) == pytest.approx((59.0, 61.0))
    assert (min_lng, max_lng) == pytest.approx((8.0, 12.0))


def test_bounding_box_contains_points_inside_radius():
    oslo = (59.91, 10.75)
    # About 8 km due east
    east = (59.91, 10.75 + 8 / (111 * 0.5015))
    assert haversine_km(*oslo, *east) < 10

    min_lat, max_lat, min_lng, max_lng = bounding_box(*oslo, 10)
    assert min_lat <= east[0] <= max_lat
    assert min_lng <= east[1] <= max_lng


def test_bounding_box_clamps_near_the_pole():
    _, _, min_lng, max_lng = bounding_box(90.0, 0.0, 50)
    assert (min_lng, max_lng) == (-180.0, 180.0)
