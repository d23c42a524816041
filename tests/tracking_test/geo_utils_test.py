import math
import random

import pytest

from healthease.tracking.geo_utils import (
    haversine_distance,
    linear_waypoints,
    random_nearby,
    to_rad,
)

ORIGIN = (12.9719, 77.5946)
TARGET = (12.9667, 77.5995)


def test_distance_to_self_is_zero():
    assert haversine_distance(*ORIGIN, *ORIGIN) == 0.0


def test_distance_is_symmetric():
    assert haversine_distance(*ORIGIN, *TARGET) == pytest.approx(haversine_distance(*TARGET, *ORIGIN))


def test_known_city_distance():
    assert haversine_distance(*ORIGIN, *TARGET) == pytest.approx(785, abs=5)


def test_one_degree_of_latitude():
    assert haversine_distance(0, 0, 1, 0) == pytest.approx(111_195, rel=1e-3)


def test_degrees_to_radians():
    assert to_rad(180) == pytest.approx(math.pi)


def test_linear_waypoints_end_exactly_on_target():
    pts = linear_waypoints(*ORIGIN, *TARGET, 20)
    assert len(pts) == 20
    assert pts[-1] == TARGET
    assert pts[0] != ORIGIN
    # evenly spaced
    first = haversine_distance(*ORIGIN, *pts[0])
    mid = haversine_distance(*pts[9], *pts[10])
    assert first == pytest.approx(mid, rel=1e-3)


def test_random_nearby_stays_within_radius():
    rng = random.Random(1)
    for _ in range(200):
        lat, lng = random_nearby(12.9716, 77.5946, 1500, rng)
        assert haversine_distance(12.9716, 77.5946, lat, lng) <= 1500 * 1.01
