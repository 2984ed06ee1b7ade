import pytest

from fairmeet.core.geo import centroid, great_circle_distance_m, midpoint, offset_m
from fairmeet.domain.models import Point
from fairmeet.errors import InvalidInputError

POINTS = [
    Point(lat=40.7128, lng=-74.0060),
    Point(lat=40.6782, lng=-73.9442),
    Point(lat=51.5074, lng=-0.1278),
    Point(lat=-33.8688, lng=151.2093),
    Point(lat=0.0, lng=0.0),
]


@pytest.mark.parametrize("a", POINTS)
@pytest.mark.parametrize("b", POINTS)
def test_distance_is_symmetric(a, b):
    assert great_circle_distance_m(a, b) == pytest.approx(great_circle_distance_m(b, a))


@pytest.mark.parametrize("a", POINTS)
def test_distance_to_self_is_zero(a):
    assert great_circle_distance_m(a, a) == 0


def test_distance_matches_known_value():
    # Manhattan -> Brooklyn is roughly 6.4 km.
    d = great_circle_distance_m(POINTS[0], POINTS[1])
    assert 6_000 < d < 7_000


def test_distance_uses_wgs84_equatorial_radius():
    # One degree of longitude on the equator: 2*pi*R/360.
    d = great_circle_distance_m(Point(lat=0, lng=0), Point(lat=0, lng=1))
    assert d == pytest.approx(111_319.49, rel=1e-6)


def test_centroid_of_single_point_is_that_point():
    assert centroid([POINTS[2]]) == POINTS[2]


def test_centroid_of_two_points_is_midpoint():
    assert centroid(POINTS[:2]) == midpoint(POINTS[0], POINTS[1])


def test_centroid_is_arithmetic_mean():
    c = centroid([Point(lat=0, lng=0), Point(lat=3, lng=6), Point(lat=6, lng=3)])
    assert c.lat == pytest.approx(3)
    assert c.lng == pytest.approx(3)


def test_centroid_rejects_empty_input():
    with pytest.raises(InvalidInputError):
        centroid([])


def test_offset_moves_by_the_requested_distance():
    origin = Point(lat=40.7128, lng=-74.0060)
    north = offset_m(origin, 1000, 0)
    east = offset_m(origin, 0, 1000)

    assert north.lng == pytest.approx(origin.lng)
    assert north.lat > origin.lat
    assert east.lng > origin.lng
    assert great_circle_distance_m(origin, north) == pytest.approx(1000, abs=0.5)
    assert great_circle_distance_m(origin, east) == pytest.approx(1000, abs=0.5)


def test_offset_wraps_across_the_antimeridian():
    moved = offset_m(Point(lat=0.0, lng=179.999), 0, 1000)
    assert -180 <= moved.lng < -179.99
