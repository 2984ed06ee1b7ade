"""
Small explainability formatting helpers.

Used by the engine (balance label on every result) and the CLI (compact summaries).
"""

from __future__ import annotations

from typing import Sequence

from fairmeet.domain.models import ScoredVenue, TravelSample

PERFECTLY_FAIR = "perfectly fair"
FAIR_ENOUGH = "fair enough"
UNBALANCED = "unbalanced"


def balance_label(travel_times: Sequence[TravelSample]) -> str | None:
    """Classify how evenly total travel time is split across parties.

    The worst deviation of any party's share from the even share (in percentage
    points) decides: <= 5 is perfectly fair, <= 15 fair enough, else unbalanced.
    """
    total = sum(s.duration_seconds for s in travel_times)
    if not travel_times or total <= 0:
        return None
    even = 100.0 / len(travel_times)
    deviation = max(abs(s.duration_seconds / total * 100.0 - even) for s in travel_times)
    if deviation <= 5:
        return PERFECTLY_FAIR
    if deviation <= 15:
        return FAIR_ENOUGH
    return UNBALANCED


def one_line_summary(venue: ScoredVenue) -> str:
    """Render a compact single-line summary for a scored venue."""
    if venue.degraded:
        return f"[{venue.place_id}] {venue.notice or ''}".strip()
    parts = [
        f"score={venue.fairness_score:.2f}",
        f"max={venue.max_commute_seconds / 60:.0f}m",
        f"spread={venue.dispersion_seconds / 60:.1f}m",
    ]
    trips = ", ".join(f"{s.party_id}={s.duration_seconds / 60:.0f}m" for s in venue.travel_times)
    if trips:
        parts.append(trips)
    if venue.balance:
        parts.append(venue.balance)
    return " | ".join(parts)
