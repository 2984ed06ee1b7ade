"""
Simulated providers ("simulation mode").

Used when live routing/search is unavailable or too expensive:
- `SimulatedTravelEstimator`: great-circle distance / assumed urban speed, multiplied by a
  bounded random factor standing in for traffic noise.
- `SimulatedVenueFinder`: a handful of plausible, category-specific venues scattered
  inside `scatter_ratio` of the search radius, so `search.radius_m` applies here too.

Both accept a `random.Random` so runs can be made reproducible (`simulation.seed`).
"""

from __future__ import annotations

import asyncio
import logging
import math
import random

from fairmeet.config.settings import SimulationSettings
from fairmeet.core.geo import great_circle_distance_m, offset_m
from fairmeet.domain.models import Point, TravelSample, Venue

logger = logging.getLogger(__name__)

MOCK_NAMES: dict[str, list[str]] = {
    "restaurant": [
        "The Rustic Table", "Blue Oak Bistro", "Saffron & Sage", "Urban Foundry", "Mason's Grill",
        "The Golden Spoon", "Hearth & Home", "Olive Branch", "Copper Pot Kitchen", "Juniper & Ivy",
        "Salt & Straw", "The Local House", "Farm to Fork", "Spice Route", "Ocean Blue",
    ],
    "cafe": [
        "Morning Brew Co.", "The Daily Grind", "Bean & Leaf", "Espresso Lab", "The Roasted Bean",
        "Canvas Coffee", "Steam & Foam", "Paper Cup Cafe", "Urban Beans", "Third Wave Roasters",
        "Latte Artistry", "The Cozy Mug", "Brewed Awakening", "Caffeine Fix", "Mocha & More",
    ],
    "bar": [
        "The Midnight Hour", "Copper Still", "Neon Moon", "The Library", "Highball Lounge",
        "Blind Tiger", "Craft & Cork", "The Alchemist", "Roxy's", "Velvet Rope",
        "Hops & Barley", "The Speakeasy", "Liquid Courage", "The Dive", "Rooftop Garden",
    ],
    "movie_theater": [
        "Cineplex Odeon", "The Grand Cinema", "Starlight Studios", "Bijou Theatre", "The Screening Room",
        "Silver Screen Lofts", "City Lights Cinema", "Paramount Picture House", "The Roxy", "Metro Movies",
        "Galaxy Theatres", "Premiere Cinemas", "Film Forum", "Indie Flicks", "The Multiplex",
    ],
    "park": [
        "Centennial Park", "Freedom Plaza", "Riverside Gardens", "Maple Grove Park",
        "Sunset Meadows", "City Hall Park", "Memorial Green", "Highland Park", "Botanical Gardens",
        "Discovery Park", "Unity Square", "Eagle Rock Reserve", "Tranquility Garden", "Community Commons",
    ],
}


class SimulatedTravelEstimator:
    """Closed-form travel model: distance / speed * noise."""

    def __init__(self, settings: SimulationSettings, rng: random.Random | None = None):
        self._settings = settings
        self._rng = rng or random.Random(settings.seed)

    @property
    def speed_mps(self) -> float:
        return self._settings.average_speed_kmh * 1000 / 3600

    async def estimate(self, origin: Point, destination: Point) -> TravelSample:
        if self._settings.latency_seconds:
            await asyncio.sleep(self._settings.latency_seconds)
        distance = great_circle_distance_m(origin, destination)
        noise = self._rng.uniform(self._settings.noise_min, self._settings.noise_max)
        return TravelSample(distance_meters=distance, duration_seconds=distance / self.speed_mps * noise)


def _price_and_rating_base(place_type: str, rng: random.Random) -> tuple[int, float]:
    if place_type == "park":
        return 0, 4.5
    if place_type == "cafe":
        return (2 if rng.random() > 0.7 else 1), 4.2
    if place_type == "movie_theater":
        return 2, 3.8
    return 2, 4.0


class SimulatedVenueFinder:
    """Generates `min_venues..max_venues` mock venues within `scatter_ratio` of the search radius."""

    def __init__(self, settings: SimulationSettings, rng: random.Random | None = None):
        self._settings = settings
        self._rng = rng or random.Random(settings.seed)

    async def search(self, center: Point, radius_meters: float, category: str) -> list[Venue]:
        if self._settings.latency_seconds:
            await asyncio.sleep(self._settings.latency_seconds)
        rng = self._rng
        names = MOCK_NAMES.get(category) or MOCK_NAMES["restaurant"]
        count = rng.randint(self._settings.min_venues, self._settings.max_venues)
        reach_m = radius_meters * self._settings.scatter_ratio

        venues: list[Venue] = []
        for i in range(count):
            price_level, rating_base = _price_and_rating_base(category, rng)
            # sqrt keeps the spread uniform over the disc
            distance_m = reach_m * math.sqrt(rng.random())
            bearing = rng.uniform(0.0, 2 * math.pi)
            position = offset_m(center, distance_m * math.cos(bearing), distance_m * math.sin(bearing))
            venues.append(
                Venue(
                    place_id=f"mock-{category}-{i}",
                    name=names[i % len(names)],
                    position=position,
                    category=category,
                    vicinity=f"{rng.randint(10, 909)} Main St",
                    rating=round(rng.uniform(rating_base, 4.9), 1),
                    user_ratings_total=rng.randint(50, 849),
                    price_level=price_level,
                    types=["point_of_interest", category],
                    metadata={"simulated": True},
                )
            )
        logger.info("Simulated %d %s venues near %.4f,%.4f", len(venues), category, center.lat, center.lng)
        return venues
