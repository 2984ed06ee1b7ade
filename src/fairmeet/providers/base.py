"""
Capability contracts consumed by the engine.

The engine never reaches for a global maps library: it is handed one `VenueFinder`
and one `TravelEstimator`. Simulated and live implementations are interchangeable
behind these protocols.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from fairmeet.domain.models import Point, TravelSample, Venue


@runtime_checkable
class VenueFinder(Protocol):
    async def search(self, center: Point, radius_meters: float, category: str) -> list[Venue]:
        """Return venues of `category` around `center`; an empty list when nothing matches."""
        ...


@runtime_checkable
class TravelEstimator(Protocol):
    async def estimate(self, origin: Point, destination: Point) -> TravelSample:
        """Return a finite, non-negative travel estimate (without `party_id`)."""
        ...
