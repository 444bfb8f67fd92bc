import math

import pytest

from stormtracker.core import distance
from stormtracker.models import Coordinate

ATLANTA = Coordinate(33.7490, -84.3880)
CHARLOTTE = Coordinate(35.2271, -80.8431)
SAVANNAH = Coordinate(32.0809, -81.0912)


def test_zero_distance():
    assert distance.haversine_miles(ATLANTA, ATLANTA) == 0


def test_symmetry():
    forward = distance.haversine_miles(ATLANTA, CHARLOTTE)
    backward = distance.haversine_miles(CHARLOTTE, ATLANTA)
    assert forward == pytest.approx(backward, rel=1e-12)


def test_one_degree_of_latitude_is_about_69_miles():
    miles = distance.haversine_miles(Coordinate(33.0, -84.0), Coordinate(34.0, -84.0))
    assert miles == pytest.approx(69.0, rel=0.03)


def test_known_city_pair():
    # Atlanta to Charlotte is roughly 226 miles as the crow flies.
    assert distance.haversine_miles(ATLANTA, CHARLOTTE) == pytest.approx(226, abs=5)


def test_triangle_inequality():
    ab = distance.haversine_miles(ATLANTA, CHARLOTTE)
    bc = distance.haversine_miles(CHARLOTTE, SAVANNAH)
    ac = distance.haversine_miles(ATLANTA, SAVANNAH)
    assert ac <= ab + bc


def test_antipodal_points_do_not_fail():
    miles = distance.haversine_miles(Coordinate(0.0, 0.0), Coordinate(0.0, 180.0))
    assert miles == pytest.approx(math.pi * distance.EARTH_RADIUS_MILES)


@pytest.mark.parametrize("miles", [0.0, 1.0, 27.5, 110.0, 1234.5])
def test_hours_distance_round_trip(miles):
    assert distance.hours_to_distance(distance.distance_to_hours(miles)) == pytest.approx(miles)


def test_distance_to_hours_uses_55_mph():
    assert distance.distance_to_hours(110) == 2.0
    assert distance.hours_to_distance(0.5) == 27.5


def test_straight_line_estimate_inflates_distance_and_duration():
    estimate = distance.straight_line_estimate(ATLANTA, CHARLOTTE)
    miles = distance.haversine_miles(ATLANTA, CHARLOTTE)
    assert estimate.distance == pytest.approx(miles * 1.2)
    assert estimate.duration == round(miles / 55 * 3600 * 1.3)
    assert isinstance(estimate.duration, int)
    assert estimate.source == "straight_line"


def test_format_duration():
    assert distance.format_duration(0) == "0m"
    assert distance.format_duration(42 * 60) == "42m"
    assert distance.format_duration(3900) == "1h 5m"
    assert distance.format_duration(2 * 3600) == "2h 0m"


def test_format_coordinates():
    assert distance.format_coordinates(33.749, -84.388) == "33.7490°N, 84.3880°W"
    assert distance.format_coordinates(-33.8688, 151.2093) == "33.8688°S, 151.2093°E"
