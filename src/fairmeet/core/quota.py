"""
Daily quota + hard expiry gate for the paid venue-search provider.

The guard is the only state that must survive a process restart. Storage and the clock
are injected so tests can use `InMemoryQuotaStore` and a fixed time:
- `check_and_reserve()` gates a search (raises on expiry or an exhausted budget),
- `record_usage()` is called only after a completed provider call, so cache hits,
  timeouts and upstream failures never consume quota.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Protocol

from fairmeet.config.settings import Settings
from fairmeet.core.env import resolve_project_path
from fairmeet.core.time import ensure_tz, local_date_key, utc_now
from fairmeet.errors import QuotaExceededError, QuotaExpiredError

logger = logging.getLogger(__name__)


@dataclass
class QuotaState:
    """Persisted counter envelope: `{"date_key": "YYYY-MM-DD", "call_count": N}`."""

    date_key: str
    call_count: int = 0


class QuotaStore(Protocol):
    def load(self) -> QuotaState | None: ...

    def save(self, state: QuotaState) -> None: ...


class InMemoryQuotaStore:
    def __init__(self, state: QuotaState | None = None):
        self._state = state

    def load(self) -> QuotaState | None:
        if self._state is None:
            return None
        return QuotaState(self._state.date_key, self._state.call_count)

    def save(self, state: QuotaState) -> None:
        self._state = QuotaState(state.date_key, state.call_count)


class JsonFileQuotaStore:
    """A JSON file holding the quota envelope.

    Writes go via a temporary file + atomic replace to avoid a corrupt counter.
    """

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> QuotaState | None:
        if not self._path.exists():
            return None
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return QuotaState(date_key=str(raw["date_key"]), call_count=max(0, int(raw["call_count"])))
        except (ValueError, KeyError, TypeError) as exc:
            # An unreadable counter is treated as a fresh day rather than blocking searches.
            logger.warning("Ignoring unreadable quota file %s: %s", self._path, exc)
            return None

    def save(self, state: QuotaState) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(asdict(state)), encoding="utf-8")
        tmp.replace(self._path)


class QuotaGuard:
    """Enforces a per-calendar-day call budget and a fixed expiry instant."""

    def __init__(
        self,
        store: QuotaStore,
        *,
        daily_limit: int = 100,
        expires_at: datetime | None = None,
        timezone: str = "UTC",
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._daily_limit = int(daily_limit)
        self._timezone = timezone
        self._expires_at = ensure_tz(expires_at, timezone) if expires_at is not None else None
        self._clock = clock
        self._expired = False

    @property
    def daily_limit(self) -> int:
        return self._daily_limit

    def _now(self) -> datetime:
        return ensure_tz(self._clock(), self._timezone)

    def _check_expiry(self, now: datetime) -> None:
        if self._expired:
            raise QuotaExpiredError("The trial period for this app has ended.")
        if self._expires_at is not None and now > self._expires_at:
            self._expired = True
            logger.warning("Quota guard expired at %s", self._expires_at.isoformat())
            raise QuotaExpiredError("The trial period for this app has ended.")

    def _current_state(self, now: datetime) -> QuotaState:
        today = local_date_key(now, self._timezone)
        state = self._store.load()
        if state is None or state.date_key != today:
            if state is not None:
                logger.info("Quota day rollover %s -> %s", state.date_key, today)
            state = QuotaState(date_key=today, call_count=0)
            self._store.save(state)
        return state

    def check_expiry(self) -> None:
        """Raise `QuotaExpiredError` once the expiry instant has passed.

        Does not read or write the daily counter, so it is safe before serving a cached result.
        """
        self._check_expiry(self._now())

    def check_and_reserve(self) -> None:
        """Gate one search.

        Raises:
            QuotaExpiredError: The expiry instant has passed (every later call fails too).
            QuotaExceededError: Today's budget is used up; state is left untouched.
        """
        now = self._now()
        self._check_expiry(now)
        state = self._current_state(now)
        if state.call_count >= self._daily_limit:
            raise QuotaExceededError(
                f"You have used your {self._daily_limit} free searches for today."
            )

    def record_usage(self) -> QuotaState:
        """Count one completed provider call and persist it."""
        now = self._now()
        state = self._current_state(now)
        state.call_count = min(self._daily_limit, state.call_count + 1)
        self._store.save(state)
        logger.debug("Quota usage %d/%d for %s", state.call_count, self._daily_limit, state.date_key)
        return state

    def status(self) -> dict[str, Any]:
        now = self._now()
        expired = self._expired or (self._expires_at is not None and now > self._expires_at)
        state = self._store.load()
        today = local_date_key(now, self._timezone)
        count = state.call_count if state is not None and state.date_key == today else 0
        return {
            "date_key": today,
            "call_count": int(count),
            "daily_limit": self._daily_limit,
            "remaining": max(0, self._daily_limit - count),
            "expires_at": self._expires_at.isoformat() if self._expires_at else None,
            "expired": bool(expired),
        }


def build_quota_guard(settings: Settings, *, clock: Callable[[], datetime] = utc_now) -> QuotaGuard:
    """Build the process-wide guard backed by the configured JSON file."""
    store = JsonFileQuotaStore(resolve_project_path(settings.quota.path))
    return QuotaGuard(
        store,
        daily_limit=settings.quota.daily_limit,
        expires_at=settings.quota.expires_at,
        timezone=settings.app.timezone,
        clock=clock,
    )
