import asyncio

import httpx
import pytest

from fairmeet.config.settings import get_settings
from fairmeet.domain.models import Point
from fairmeet.errors import ProviderError
from fairmeet.providers.google import GoogleDistanceMatrixEstimator, GooglePlacesVenueFinder

CENTER = Point(lat=40.7128, lng=-74.0060)


def _settings(api_key="test-key"):
    settings = get_settings()
    google = settings.providers.google.model_copy(update={"api_key": api_key})
    providers = settings.providers.model_copy(update={"mode": "google", "google": google})
    return settings.model_copy(update={"providers": providers})


def _client(payload, seen=None, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_missing_api_key_is_rejected():
    with pytest.raises(ValueError, match="GOOGLE_MAPS_API_KEY"):
        GooglePlacesVenueFinder(_settings(api_key=None))


def test_places_search_parses_results_and_sends_query():
    payload = {
        "status": "OK",
        "results": [
            {
                "place_id": "abc",
                "name": "Blue Oak Bistro",
                "geometry": {"location": {"lat": 40.71, "lng": -74.0}},
                "vicinity": "12 Main St",
                "rating": 4.4,
                "user_ratings_total": 210,
                "price_level": 2,
                "types": ["restaurant", "food"],
                "opening_hours": {"open_now": True},
            },
            {"place_id": "no-geometry", "name": "Broken"},
        ],
    }
    seen: list[httpx.Request] = []
    finder = GooglePlacesVenueFinder(_settings(), client=_client(payload, seen))

    venues = asyncio.run(finder.search(CENTER, 4000, "restaurant"))

    assert [v.place_id for v in venues] == ["abc"]
    venue = venues[0]
    assert venue.position == Point(lat=40.71, lng=-74.0)
    assert venue.rating == 4.4
    assert venue.metadata["open_now"] is True
    params = seen[0].url.params
    assert params["location"] == "40.7128,-74.006"
    assert params["radius"] == "4000"
    assert params["type"] == "restaurant"
    assert params["key"] == "test-key"


def test_places_zero_results_is_empty():
    finder = GooglePlacesVenueFinder(_settings(), client=_client({"status": "ZERO_RESULTS", "results": []}))
    assert asyncio.run(finder.search(CENTER, 4000, "cafe")) == []


def test_places_error_status_raises():
    finder = GooglePlacesVenueFinder(
        _settings(), client=_client({"status": "REQUEST_DENIED", "error_message": "bad key"})
    )
    with pytest.raises(ProviderError, match="REQUEST_DENIED"):
        asyncio.run(finder.search(CENTER, 4000, "cafe"))


def test_http_error_propagates():
    finder = GooglePlacesVenueFinder(_settings(), client=_client({}, status_code=503))
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(finder.search(CENTER, 4000, "cafe"))


def test_distance_matrix_returns_first_element():
    payload = {
        "status": "OK",
        "rows": [{"elements": [{"status": "OK", "distance": {"value": 5400}, "duration": {"value": 780}}]}],
    }
    seen: list[httpx.Request] = []
    estimator = GoogleDistanceMatrixEstimator(_settings(), client=_client(payload, seen))

    sample = asyncio.run(estimator.estimate(CENTER, Point(lat=40.75, lng=-73.98)))

    assert sample.distance_meters == 5400
    assert sample.duration_seconds == 780
    assert seen[0].url.params["mode"] == "driving"


def test_distance_matrix_unroutable_element_raises():
    payload = {"status": "OK", "rows": [{"elements": [{"status": "ZERO_RESULTS"}]}]}
    estimator = GoogleDistanceMatrixEstimator(_settings(), client=_client(payload))
    with pytest.raises(ProviderError, match="ZERO_RESULTS"):
        asyncio.run(estimator.estimate(CENTER, Point(lat=51.5, lng=-0.12)))


def test_distance_matrix_without_rows_raises():
    estimator = GoogleDistanceMatrixEstimator(_settings(), client=_client({"status": "OK", "rows": []}))
    with pytest.raises(ProviderError):
        asyncio.run(estimator.estimate(CENTER, Point(lat=40.75, lng=-73.98)))
