"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- API/CLI inputs (`Party`, `MeetRequest`)
- provider outputs (`Venue`, `TravelSample`)
- ranked, explainable output (`ScoredVenue`, `MeetResult`)

Keeping these models in one place helps:
- validation (reject bad coordinates early),
- typed refactors,
- consistent JSON output across CLI/API.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Stable contract: calling UIs special-case these place ids.
SENTINEL_EXPIRED = "project-expired"
SENTINEL_QUOTA = "quota-limit"
SENTINEL_TIMEOUT = "timeout-fallback"

# UI category -> provider place type.
CATEGORY_PLACE_TYPES: dict[str, str] = {
    "dining": "restaurant",
    "coffee": "cafe",
    "drinks": "bar",
    "movies": "movie_theater",
    "parks": "park",
}

KNOWN_CATEGORIES = tuple(CATEGORY_PLACE_TYPES)


def normalize_category(category: str) -> str:
    """Lower-case/strip a category; known UI categories map to provider place types."""
    value = (category or "").strip().lower()
    if not value:
        raise ValueError("category must be a non-empty string")
    return CATEGORY_PLACE_TYPES.get(value, value)


class Point(BaseModel):
    """A geographic point in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Party(BaseModel):
    """One person whose position contributes to the meeting-point search."""

    id: str = Field(..., min_length=1)
    label: str = ""
    color: str = "#1a73e8"
    position: Point | None = None


class Venue(BaseModel):
    """A candidate venue produced by a `VenueFinder`."""

    place_id: str
    name: str
    position: Point
    category: str
    vicinity: str | None = None
    rating: float | None = None
    user_ratings_total: int | None = None
    price_level: int | None = None
    types: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class TravelSample(BaseModel):
    """Estimated travel from one party to one venue (ephemeral, per engine run)."""

    party_id: str | None = None
    distance_meters: float = Field(..., ge=0)
    duration_seconds: float = Field(..., ge=0)

    @field_validator("distance_meters", "duration_seconds")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("travel values must be finite")
        return value


class ScoredVenue(Venue):
    """A venue plus its travel vector and fairness breakdown. Lower score ranks first."""

    travel_times: list[TravelSample] = Field(default_factory=list)
    max_commute_seconds: float = 0.0
    dispersion_seconds: float = 0.0
    fairness_score: float = 0.0
    balance: str | None = None
    degraded: bool = False
    notice: str | None = None


MeetStatus = Literal["ok", "no_candidates", "skipped", "expired", "quota_exceeded", "timeout"]


class MeetRequest(BaseModel):
    """Request payload for one meeting-spot search."""

    parties: list[Party] = Field(..., min_length=1)
    category: str = "dining"
    settings_overrides: dict[str, Any] | None = None

    @field_validator("parties")
    @classmethod
    def _unique_ids(cls, parties: list[Party]) -> list[Party]:
        ids = [p.id for p in parties]
        if len(ids) != len(set(ids)):
            raise ValueError("party ids must be unique")
        return parties


class MeetResult(BaseModel):
    """Ranked venues plus run metadata."""

    generated_at: datetime
    status: MeetStatus
    category: str
    results: list[ScoredVenue]
    meta: dict[str, Any] = Field(default_factory=dict)
