"""
Live providers backed by the Google Maps web services.

- `GooglePlacesVenueFinder`: Places Nearby Search (`location`, `radius`, `type`).
- `GoogleDistanceMatrixEstimator`: Distance Matrix, one origin/destination element per call.

Both talk JSON over `fairmeet.core.http.get_json`. A non-OK API status raises
`ProviderError`; the engine turns that into "no data" for the affected call.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from fairmeet.config.settings import Settings
from fairmeet.core.http import get_json
from fairmeet.domain.models import Point, TravelSample, Venue
from fairmeet.errors import ProviderError

logger = logging.getLogger(__name__)


def _fmt(point: Point) -> str:
    return f"{point.lat},{point.lng}"


class _GoogleClientBase:
    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        api_key = settings.providers.google.api_key
        if not api_key:
            raise ValueError("providers.google.api_key (GOOGLE_MAPS_API_KEY) is required for live mode")
        self._settings = settings
        self._api_key = api_key
        self._client = client

    async def _get(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        payload = await get_json(
            url,
            params={**params, "key": self._api_key},
            timeout_seconds=self._settings.app.http_timeout_seconds,
            client=self._client,
        )
        if not isinstance(payload, dict):
            raise ProviderError("unexpected response shape")
        return payload


class GooglePlacesVenueFinder(_GoogleClientBase):
    async def search(self, center: Point, radius_meters: float, category: str) -> list[Venue]:
        payload = await self._get(
            self._settings.providers.google.places_url,
            {"location": _fmt(center), "radius": int(radius_meters), "type": category},
        )
        status = payload.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            raise ProviderError(f"places status {status}: {payload.get('error_message', '')}".strip())

        venues: list[Venue] = []
        for place in (payload.get("results") or [])[: self._settings.providers.google.max_venues]:
            location = ((place.get("geometry") or {}).get("location")) or {}
            place_id = place.get("place_id")
            if not place_id or location.get("lat") is None or location.get("lng") is None:
                continue
            venues.append(
                Venue(
                    place_id=str(place_id),
                    name=str(place.get("name") or "Unnamed venue"),
                    position=Point(lat=float(location["lat"]), lng=float(location["lng"])),
                    category=category,
                    vicinity=place.get("vicinity"),
                    rating=place.get("rating"),
                    user_ratings_total=place.get("user_ratings_total"),
                    price_level=place.get("price_level"),
                    types=list(place.get("types") or []),
                    metadata={
                        "photo_reference": ((place.get("photos") or [{}])[0]).get("photo_reference"),
                        "open_now": (place.get("opening_hours") or {}).get("open_now"),
                    },
                )
            )
        logger.info("Places returned %d %s venues", len(venues), category)
        return venues


class GoogleDistanceMatrixEstimator(_GoogleClientBase):
    async def estimate(self, origin: Point, destination: Point) -> TravelSample:
        payload = await self._get(
            self._settings.providers.google.distance_matrix_url,
            {
                "origins": _fmt(origin),
                "destinations": _fmt(destination),
                "mode": self._settings.providers.google.travel_mode,
            },
        )
        if payload.get("status") != "OK":
            raise ProviderError(f"distance matrix status {payload.get('status')}")
        try:
            element = payload["rows"][0]["elements"][0]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError("distance matrix response has no elements") from exc
        if element.get("status") != "OK":
            raise ProviderError(f"distance matrix element status {element.get('status')}")
        return TravelSample(
            distance_meters=float(element["distance"]["value"]),
            duration_seconds=float(element["duration"]["value"]),
        )
