import asyncio
import random

import pytest

from fairmeet.config.settings import SimulationSettings
from fairmeet.core.geo import great_circle_distance_m
from fairmeet.domain.models import Point
from fairmeet.providers.base import TravelEstimator, VenueFinder
from fairmeet.providers.simulated import MOCK_NAMES, SimulatedTravelEstimator, SimulatedVenueFinder

CENTER = Point(lat=40.7128, lng=-74.0060)


def test_simulated_providers_satisfy_protocols():
    settings = SimulationSettings()
    assert isinstance(SimulatedVenueFinder(settings), VenueFinder)
    assert isinstance(SimulatedTravelEstimator(settings), TravelEstimator)


def test_travel_estimate_stays_within_noise_band():
    settings = SimulationSettings(average_speed_kmh=36.0)
    estimator = SimulatedTravelEstimator(settings, rng=random.Random(7))
    destination = Point(lat=40.7580, lng=-73.9855)
    distance = great_circle_distance_m(CENTER, destination)

    for _ in range(20):
        sample = asyncio.run(estimator.estimate(CENTER, destination))
        assert sample.distance_meters == distance
        # 36 km/h is 10 m/s
        assert distance / 10 * 0.85 <= sample.duration_seconds <= distance / 10 * 1.35


def test_same_point_takes_no_time():
    sample = asyncio.run(SimulatedTravelEstimator(SimulationSettings()).estimate(CENTER, CENTER))
    assert sample.distance_meters == 0
    assert sample.duration_seconds == 0


def test_venue_finder_scatters_category_venues_inside_the_radius():
    settings = SimulationSettings(min_venues=5, max_venues=8, scatter_ratio=0.35)
    finder = SimulatedVenueFinder(settings, rng=random.Random(1))

    venues = asyncio.run(finder.search(CENTER, 4000, "cafe"))

    assert 5 <= len(venues) <= 8
    assert len({v.place_id for v in venues}) == len(venues)
    for venue in venues:
        assert venue.category == "cafe"
        assert venue.name in MOCK_NAMES["cafe"]
        assert great_circle_distance_m(CENTER, venue.position) <= 4000 * 0.35 + 1
        assert venue.metadata["simulated"] is True


def test_smaller_search_radius_pulls_venues_closer():
    settings = SimulationSettings(min_venues=8, max_venues=8, scatter_ratio=1.0)
    near = asyncio.run(SimulatedVenueFinder(settings, rng=random.Random(5)).search(CENTER, 300, "bar"))
    far = asyncio.run(SimulatedVenueFinder(settings, rng=random.Random(5)).search(CENTER, 30_000, "bar"))

    assert max(great_circle_distance_m(CENTER, v.position) for v in near) <= 301
    # Same RNG draws, so every venue sits 100x further out.
    for a, b in zip(near, far):
        assert great_circle_distance_m(CENTER, b.position) == pytest.approx(
            100 * great_circle_distance_m(CENTER, a.position), rel=1e-2
        )


def test_unknown_category_falls_back_to_restaurant_names():
    finder = SimulatedVenueFinder(SimulationSettings(min_venues=3, max_venues=3), rng=random.Random(2))
    venues = asyncio.run(finder.search(CENTER, 4000, "bowling_alley"))
    assert [v.name for v in venues] == MOCK_NAMES["restaurant"][:3]
    assert all(v.category == "bowling_alley" for v in venues)


def test_parks_are_free():
    finder = SimulatedVenueFinder(SimulationSettings(), rng=random.Random(3))
    venues = asyncio.run(finder.search(CENTER, 4000, "park"))
    assert all(v.price_level == 0 for v in venues)


def test_seed_makes_results_reproducible():
    settings = SimulationSettings(seed=42)
    a = asyncio.run(SimulatedVenueFinder(settings).search(CENTER, 4000, "bar"))
    b = asyncio.run(SimulatedVenueFinder(settings).search(CENTER, 4000, "bar"))
    assert [v.model_dump() for v in a] == [v.model_dump() for v in b]
