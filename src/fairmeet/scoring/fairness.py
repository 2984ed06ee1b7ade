"""
Fairness metric.

A venue is fair when nobody suffers a long trip (worst-case commute) and the trips are
similar to each other (dispersion). Both terms are in the configured time unit
(minutes by default) and combined linearly:

    score = w_max * max(durations) + w_disp * pstdev(durations)

Lower is better. The same formula applies to every group size; for two parties it
reduces to `(w_max / 2) * (t1 + t2) + (w_max / 2 + w_disp / 2) * |t1 - t2|`, so the
gap between the two trips weighs more than their total.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from statistics import pstdev
from typing import Sequence

from fairmeet.config.settings import ScoringSettings
from fairmeet.domain.models import TravelSample
from fairmeet.errors import InvalidInputError


@dataclass(frozen=True)
class FairnessBreakdown:
    score: float
    max_commute_seconds: float
    dispersion_seconds: float


class FairnessScorer:
    def __init__(self, settings: ScoringSettings | None = None):
        settings = settings or ScoringSettings()
        self._max_weight = float(settings.weights["max_commute"])
        self._dispersion_weight = float(settings.weights["dispersion"])
        self._unit = float(settings.time_unit_seconds)

    @property
    def weights(self) -> dict[str, float]:
        return {"max_commute": self._max_weight, "dispersion": self._dispersion_weight}

    def combine(self, max_commute_seconds: float, dispersion_seconds: float) -> float:
        """Weighted sum of the two terms, converted to the scoring time unit."""
        return (
            self._max_weight * (max_commute_seconds / self._unit)
            + self._dispersion_weight * (dispersion_seconds / self._unit)
        )

    def score(self, travel_times: Sequence[TravelSample]) -> FairnessBreakdown:
        if not travel_times:
            raise InvalidInputError("cannot score a venue without travel times")
        durations = [float(s.duration_seconds) for s in travel_times]
        for d in durations:
            if not math.isfinite(d) or d < 0:
                raise ValueError(f"invalid travel duration: {d!r}")

        max_commute = max(durations)
        dispersion = pstdev(durations) if len(durations) > 1 else 0.0
        return FairnessBreakdown(
            score=self.combine(max_commute, dispersion),
            max_commute_seconds=max_commute,
            dispersion_seconds=dispersion,
        )
