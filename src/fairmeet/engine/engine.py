from __future__ import annotations

# This module is the "orchestrator" of the fairness pipeline.
# It wires together:
# - domain input (parties + category)
# - the quota gate (protects the paid venue-search provider)
# - providers (VenueFinder + TravelEstimator, simulated or live)
# - fairness scoring and stable ranking
# - the result cache (no second search for the same group of people)
#
# Failures of external calls never escape from here: a failed venue search means
# "no candidates", a timed-out one ends the run as `timed_out`, and a failed travel
# estimate drops that one venue. Only the quota errors are raised, because the caller
# must render them differently.
#
# `FairnessEngine.state` is the state of the most recent run, for debugging. Per-request
# outcomes travel in the returned `EngineRun`.

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from fairmeet.config.settings import SearchSettings, Settings
from fairmeet.core.cache import ResultCache, fingerprint, policy_namespace
from fairmeet.core.geo import centroid
from fairmeet.core.quota import QuotaGuard
from fairmeet.domain.models import Party, Point, ScoredVenue, TravelSample, Venue, normalize_category
from fairmeet.errors import QuotaExceededError, QuotaExpiredError
from fairmeet.providers.base import TravelEstimator, VenueFinder
from fairmeet.providers.google import GoogleDistanceMatrixEstimator, GooglePlacesVenueFinder
from fairmeet.providers.simulated import SimulatedTravelEstimator, SimulatedVenueFinder
from fairmeet.scoring.explain import balance_label
from fairmeet.scoring.fairness import FairnessScorer

logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    GATING = "gating"
    RESOLVING_CANDIDATES = "resolving_candidates"
    SCORING = "scoring"
    RANKED = "ranked"
    SKIPPED = "skipped"
    EXPIRED = "expired"
    QUOTA_EXCEEDED = "quota_exceeded"
    TIMED_OUT = "timed_out"
    NO_CANDIDATES = "no_candidates"


@dataclass
class EngineRun:
    """Outcome of one `FairnessEngine.run_detailed` call."""

    results: list[ScoredVenue]
    state: EngineState
    cache_hit: bool = False
    candidates: int = 0
    excluded: list[str] = field(default_factory=list)
    timings_ms: dict[str, int] = field(default_factory=dict)


def eligible_parties(parties: Sequence[Party]) -> list[Party]:
    """Parties with a position, in input order."""
    return [p for p in parties if p.position is not None]


def build_providers(settings: Settings) -> tuple[VenueFinder, TravelEstimator]:
    """Construct the configured provider pair (`providers.mode`)."""
    if settings.providers.mode == "google":
        return GooglePlacesVenueFinder(settings), GoogleDistanceMatrixEstimator(settings)
    return SimulatedVenueFinder(settings.simulation), SimulatedTravelEstimator(settings.simulation)


def build_result_cache(settings: Settings) -> ResultCache:
    return ResultCache(
        max_entries=settings.cache.max_entries,
        ttl_seconds=settings.cache.ttl_seconds,
        enabled=settings.cache.enabled,
    )


def settings_namespace(settings: Settings) -> str:
    """Cache namespace for the policy knobs that change a ranking."""
    return policy_namespace(
        {
            "provider": settings.providers.mode,
            "scoring": settings.scoring.model_dump(mode="json"),
            "radius_m": settings.search.radius_m,
            "max_results": settings.search.max_results,
            "speed": settings.simulation.average_speed_kmh,
        }
    )


class FairnessEngine:
    """Turns a set of party positions into venues ranked by travel fairness."""

    def __init__(
        self,
        *,
        venue_finder: VenueFinder,
        travel_estimator: TravelEstimator,
        quota: QuotaGuard,
        cache: ResultCache | None = None,
        scorer: FairnessScorer | None = None,
        search: SearchSettings | None = None,
        namespace: str = "default",
    ):
        self._venue_finder = venue_finder
        self._travel_estimator = travel_estimator
        self._quota = quota
        self._cache = cache
        self._scorer = scorer or FairnessScorer()
        self._search = search or SearchSettings()
        self._namespace = namespace
        self.state = EngineState.IDLE

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        quota: QuotaGuard,
        cache: ResultCache | None = None,
        venue_finder: VenueFinder | None = None,
        travel_estimator: TravelEstimator | None = None,
    ) -> "FairnessEngine":
        if venue_finder is None or travel_estimator is None:
            default_finder, default_estimator = build_providers(settings)
            venue_finder = venue_finder or default_finder
            travel_estimator = travel_estimator or default_estimator
        return cls(
            venue_finder=venue_finder,
            travel_estimator=travel_estimator,
            quota=quota,
            cache=cache,
            scorer=FairnessScorer(settings.scoring),
            search=settings.search,
            namespace=settings_namespace(settings),
        )

    @property
    def search_settings(self) -> SearchSettings:
        return self._search

    @property
    def venue_finder(self) -> VenueFinder:
        return self._venue_finder

    @property
    def travel_estimator(self) -> TravelEstimator:
        return self._travel_estimator

    def _set_state(self, state: EngineState) -> None:
        logger.debug("Engine state %s -> %s", self.state.value, state.value)
        self.state = state

    async def run(self, parties: Sequence[Party], category: str) -> list[ScoredVenue]:
        """Return venues ranked ascending by fairness score.

        Returns an empty list for fewer than two positioned parties (no search is made)
        and when no candidate venue could be scored.

        Raises:
            QuotaExpiredError: The trial period has ended.
            QuotaExceededError: Today's search budget is used up.
        """
        return (await self.run_detailed(parties, category)).results

    async def run_detailed(self, parties: Sequence[Party], category: str) -> EngineRun:
        t0 = time.monotonic()
        timings_ms: dict[str, int] = {}

        # ---- Step 0: validate (no-op below two positioned parties) ----
        self._set_state(EngineState.VALIDATING)
        place_type = normalize_category(category)
        eligible = eligible_parties(parties)
        if len(eligible) < 2:
            logger.info("Skipping search: %d positioned parties (need 2)", len(eligible))
            self._set_state(EngineState.SKIPPED)
            return EngineRun(results=[], state=EngineState.SKIPPED)

        # Expiry is terminal and gates cached answers too; it never touches the daily counter.
        try:
            self._quota.check_expiry()
        except QuotaExpiredError:
            self._set_state(EngineState.EXPIRED)
            raise

        key = fingerprint(eligible, place_type)
        if self._cache is not None:
            cached = self._cache.get(key, namespace=self._namespace)
            if cached is not None:
                logger.info("Cache hit for %s search (%d parties)", place_type, len(eligible))
                self._set_state(EngineState.RANKED)
                return EngineRun(results=cached, state=EngineState.RANKED, cache_hit=True)

        # ---- Step 1: centroid of eligible positions ----
        center = centroid([p.position for p in eligible if p.position is not None])

        # ---- Step 2: quota gate ----
        self._set_state(EngineState.GATING)
        try:
            self._quota.check_and_reserve()
        except QuotaExpiredError:
            self._set_state(EngineState.EXPIRED)
            raise
        except QuotaExceededError:
            self._set_state(EngineState.QUOTA_EXCEEDED)
            raise

        # ---- Step 3: candidate venues (bounded wait; usage recorded on completion) ----
        self._set_state(EngineState.RESOLVING_CANDIDATES)
        t_search = time.monotonic()
        candidates, search_timed_out = await self._find_candidates(center, place_type)
        timings_ms["venue_search"] = int((time.monotonic() - t_search) * 1000)
        if search_timed_out:
            # Reported like the outer timeout: the caller shows the midpoint placeholder.
            self._set_state(EngineState.TIMED_OUT)
            return EngineRun(results=[], state=EngineState.TIMED_OUT, timings_ms=timings_ms)
        if not candidates:
            self._set_state(EngineState.NO_CANDIDATES)
            return EngineRun(results=[], state=EngineState.NO_CANDIDATES, timings_ms=timings_ms)

        # ---- Step 4+5: travel fan-out and per-venue scoring ----
        self._set_state(EngineState.SCORING)
        t_score = time.monotonic()
        limiter = asyncio.Semaphore(self._search.max_concurrency)
        scored = await asyncio.gather(*(self._score_venue(v, eligible, limiter) for v in candidates))
        timings_ms["scoring"] = int((time.monotonic() - t_score) * 1000)
        excluded = [v.place_id for v, s in zip(candidates, scored) if s is None]
        if excluded:
            logger.warning("Excluded %d/%d venues with incomplete travel data", len(excluded), len(candidates))

        # ---- Step 6: stable ascending sort (ties keep provider order) ----
        ranked = sorted((s for s in scored if s is not None), key=lambda s: s.fairness_score)
        ranked = ranked[: self._search.max_results]
        timings_ms["total"] = int((time.monotonic() - t0) * 1000)
        if not ranked:
            self._set_state(EngineState.NO_CANDIDATES)
            return EngineRun(
                results=[],
                state=EngineState.NO_CANDIDATES,
                candidates=len(candidates),
                excluded=excluded,
                timings_ms=timings_ms,
            )

        if self._cache is not None:
            self._cache.put(key, ranked, namespace=self._namespace)
        self._set_state(EngineState.RANKED)
        return EngineRun(
            results=ranked,
            state=EngineState.RANKED,
            candidates=len(candidates),
            excluded=excluded,
            timings_ms=timings_ms,
        )

    async def _find_candidates(self, center: Point, place_type: str) -> tuple[list[Venue], bool]:
        """Return (deduplicated venues, whether the search timed out)."""
        try:
            venues = await asyncio.wait_for(
                self._venue_finder.search(center, self._search.radius_m, place_type),
                timeout=self._search.venue_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("Venue search timed out after %.1fs", self._search.venue_timeout_seconds)
            return [], True
        except Exception as e:
            logger.warning("Venue search failed: %s", str(e))
            return [], False

        self._quota.record_usage()

        unique: list[Venue] = []
        seen: set[str] = set()
        for venue in venues or []:
            if venue.place_id in seen:
                continue
            seen.add(venue.place_id)
            unique.append(venue)
        return unique, False

    async def _estimate(self, party: Party, venue: Venue, limiter: asyncio.Semaphore) -> TravelSample | None:
        if party.position is None:
            return None
        async with limiter:
            try:
                sample = await asyncio.wait_for(
                    self._travel_estimator.estimate(party.position, venue.position),
                    timeout=self._search.estimate_timeout_seconds,
                )
                return TravelSample(
                    party_id=party.id,
                    distance_meters=sample.distance_meters,
                    duration_seconds=sample.duration_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning("Travel estimate timed out for %s -> %s", party.id, venue.place_id)
                return None
            except Exception as e:
                logger.warning("Travel estimate failed for %s -> %s: %s", party.id, venue.place_id, str(e))
                return None

    async def _score_venue(
        self, venue: Venue, parties: Sequence[Party], limiter: asyncio.Semaphore
    ) -> ScoredVenue | None:
        # Every party's estimate must resolve before this venue is scored.
        samples = await asyncio.gather(*(self._estimate(p, venue, limiter) for p in parties))
        if any(s is None for s in samples):
            return None
        travel_times = [s for s in samples if s is not None]
        try:
            breakdown = self._scorer.score(travel_times)
        except ValueError as e:
            logger.warning("Unscorable travel data for %s: %s", venue.place_id, str(e))
            return None
        return ScoredVenue(
            **venue.model_dump(),
            travel_times=travel_times,
            max_commute_seconds=breakdown.max_commute_seconds,
            dispersion_seconds=breakdown.dispersion_seconds,
            fairness_score=breakdown.score,
            balance=balance_label(travel_times),
        )
