"""
Caller-side wrapper around the engine.

`MeetPlanner.plan()` always returns a well-formed `MeetResult`:
- the engine run races an outer timeout (`search.engine_timeout_seconds`); the loser is
  cancelled by `asyncio.wait_for`,
- a venue search that hits its own deadline is treated as the same timeout,
- quota expiry, an exhausted daily budget and the timeout each become exactly one
  degraded placeholder venue with a fixed sentinel `place_id`, positioned at the
  midpoint of the two primary parties.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Sequence
from zoneinfo import ZoneInfo

from fairmeet.config.settings import Settings
from fairmeet.core.cache import ResultCache
from fairmeet.core.geo import midpoint
from fairmeet.core.quota import QuotaGuard
from fairmeet.domain.models import (
    SENTINEL_EXPIRED,
    SENTINEL_QUOTA,
    SENTINEL_TIMEOUT,
    MeetResult,
    MeetStatus,
    Party,
    ScoredVenue,
    normalize_category,
)
from fairmeet.engine.engine import EngineRun, EngineState, FairnessEngine, eligible_parties
from fairmeet.errors import InvalidInputError, QuotaExceededError, QuotaExpiredError
from fairmeet.providers.base import TravelEstimator, VenueFinder

logger = logging.getLogger(__name__)

# sentinel -> (name, human-readable explanation)
DEGRADED_MESSAGES: dict[str, tuple[str, str]] = {
    SENTINEL_EXPIRED: (
        "Trial Period Expired",
        "The trial period for this app has ended. No more searches allowed.",
    ),
    SENTINEL_QUOTA: (
        "Daily Limit Reached",
        "You have used all free searches for today.",
    ),
    SENTINEL_TIMEOUT: (
        "Geographic Midpoint (Timeout)",
        "Search timed out, showing the exact middle instead.",
    ),
}


def degraded_result(place_id: str, parties: Sequence[Party], category: str) -> ScoredVenue:
    """Build the single placeholder result for an engine-level failure."""
    name, notice = DEGRADED_MESSAGES[place_id]
    points = [p.position for p in parties if p.position is not None]
    if len(points) < 2:
        raise InvalidInputError("a placeholder result needs two positioned parties")
    return ScoredVenue(
        place_id=place_id,
        name=name,
        position=midpoint(points[0], points[1]),
        category=category,
        vicinity=notice,
        types=["point_of_interest"],
        degraded=True,
        notice=notice,
    )


_STATUS_BY_STATE: dict[EngineState, MeetStatus] = {
    EngineState.RANKED: "ok",
    EngineState.NO_CANDIDATES: "no_candidates",
    EngineState.SKIPPED: "skipped",
    EngineState.TIMED_OUT: "timeout",
}


class MeetPlanner:
    def __init__(self, engine: FairnessEngine, *, timeout_seconds: float | None = None, timezone: str = "UTC"):
        self._engine = engine
        self._timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else engine.search_settings.engine_timeout_seconds
        )
        self._timezone = timezone

    @property
    def engine(self) -> FairnessEngine:
        return self._engine

    async def plan(self, parties: Sequence[Party], category: str) -> MeetResult:
        t0 = time.monotonic()
        place_type = normalize_category(category)
        meta: dict[str, Any] = {"parties_total": len(parties), "parties_eligible": len(eligible_parties(parties))}

        status: MeetStatus
        state: EngineState
        try:
            run: EngineRun = await asyncio.wait_for(
                self._engine.run_detailed(parties, place_type), timeout=self._timeout_seconds
            )
        except QuotaExpiredError:
            state = EngineState.EXPIRED
            status, results = "expired", [degraded_result(SENTINEL_EXPIRED, parties, place_type)]
        except QuotaExceededError:
            state = EngineState.QUOTA_EXCEEDED
            status, results = "quota_exceeded", [degraded_result(SENTINEL_QUOTA, parties, place_type)]
        except asyncio.TimeoutError:
            logger.warning("Meeting search timed out after %.1fs; returning midpoint", self._timeout_seconds)
            state = self._engine.state = EngineState.TIMED_OUT
            status, results = "timeout", [degraded_result(SENTINEL_TIMEOUT, parties, place_type)]
        except Exception:
            logger.exception("Meeting search failed; returning midpoint")
            state = self._engine.state = EngineState.TIMED_OUT
            status, results = "timeout", [degraded_result(SENTINEL_TIMEOUT, parties, place_type)]
        else:
            state = run.state
            status = _STATUS_BY_STATE.get(run.state, "ok")
            if run.state is EngineState.TIMED_OUT:
                # The venue search hit its own deadline inside the run.
                logger.warning("Venue search timed out; returning midpoint")
                results = [degraded_result(SENTINEL_TIMEOUT, parties, place_type)]
            else:
                results = run.results
            meta.update(
                {
                    "cache_hit": run.cache_hit,
                    "candidates": run.candidates,
                    "excluded_venues": run.excluded,
                    "timings_ms": run.timings_ms,
                }
            )

        meta["engine_state"] = state.value
        meta["elapsed_ms"] = int((time.monotonic() - t0) * 1000)
        return MeetResult(
            generated_at=datetime.now(ZoneInfo(self._timezone)),
            status=status,
            category=place_type,
            results=results,
            meta=meta,
        )


def build_planner(
    settings: Settings,
    *,
    quota: QuotaGuard,
    cache: ResultCache | None = None,
    venue_finder: VenueFinder | None = None,
    travel_estimator: TravelEstimator | None = None,
) -> MeetPlanner:
    engine = FairnessEngine.from_settings(
        settings,
        quota=quota,
        cache=cache,
        venue_finder=venue_finder,
        travel_estimator=travel_estimator,
    )
    return MeetPlanner(engine, timeout_seconds=settings.search.engine_timeout_seconds, timezone=settings.app.timezone)
