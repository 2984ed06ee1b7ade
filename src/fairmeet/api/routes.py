"""
API routes.

Endpoints:
- POST `/api/meet`: main entrypoint (parties + category -> ranked fair venues).
- GET  `/api/categories`: UI categories and the provider place types they map to.
- GET  `/api/quota`: today's usage against the daily limit and the expiry instant.
- GET  `/api/settings`: public settings for a web UI (secrets redacted).
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, HTTPException

from fairmeet.config.overrides import apply_settings_overrides
from fairmeet.config.settings import get_settings
from fairmeet.core.cache import ResultCache, record_cache_stats
from fairmeet.core.quota import QuotaGuard, build_quota_guard
from fairmeet.domain.models import CATEGORY_PLACE_TYPES, MeetRequest, MeetResult
from fairmeet.engine.engine import build_result_cache
from fairmeet.engine.planner import MeetPlanner, build_planner

router = APIRouter()


@lru_cache
def _quota() -> QuotaGuard:
    return build_quota_guard(get_settings())


@lru_cache
def _cache() -> ResultCache:
    return build_result_cache(get_settings())


@lru_cache
def _planner() -> MeetPlanner:
    return build_planner(get_settings(), quota=_quota(), cache=_cache())


def _planner_for(request: MeetRequest) -> MeetPlanner:
    """Default planner, or a one-off planner sharing quota + cache when overrides are sent."""
    if not request.settings_overrides:
        return _planner()
    settings = apply_settings_overrides(get_settings(), request.settings_overrides)
    engine = _planner().engine
    if settings.providers.mode == "simulated" and settings.simulation != get_settings().simulation:
        # The simulated travel model bakes in its speed, so it is rebuilt.
        return build_planner(settings, quota=_quota(), cache=_cache())
    return build_planner(
        settings,
        quota=_quota(),
        cache=_cache(),
        venue_finder=engine.venue_finder,
        travel_estimator=engine.travel_estimator,
    )


@router.post("/api/meet", response_model=MeetResult)
async def post_meet(request: MeetRequest) -> MeetResult:
    """Find venues that are fair to every positioned party."""
    try:
        planner = _planner_for(request)
        with record_cache_stats() as stats:
            result = await planner.plan(request.parties, request.category)
        return result.model_copy(update={"meta": {**result.meta, "cache": stats.as_dict()}})
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION_ERROR", "message": str(e)},
        ) from e
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail={"code": "INTERNAL_ERROR", "message": str(e)},
        ) from e


@router.get("/api/categories")
def get_categories() -> dict:
    return {
        "categories": [
            {"id": name, "place_type": place_type} for name, place_type in CATEGORY_PLACE_TYPES.items()
        ]
    }


@router.get("/api/quota")
def get_quota() -> dict:
    return _quota().status()


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return settings safe to expose to a browser (API key redacted)."""
    payload = get_settings().model_dump(mode="json")
    google = payload.get("providers", {}).get("google", {})
    if google.get("api_key"):
        google["api_key"] = "***"
    payload.get("quota", {}).pop("path", None)
    return payload
