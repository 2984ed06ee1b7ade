from __future__ import annotations

import contextvars
import json
import time
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass
from hashlib import sha256
from typing import Any, Iterable, Iterator

from fairmeet.domain.models import Party, ScoredVenue, normalize_category

"""
In-process memo of engine runs.

A meeting search is keyed by a fingerprint of the eligible party positions and the
category, so asking twice for the same set of people (in any order) does not spend
another venue-search call:
- Keys are hashed (SHA-256) so they are stable and short.
- Entries live in an LRU bounded by `max_entries`; an optional TTL is enforced on read.
- A namespace separates results computed under different scoring/search policies.
"""


@dataclass
class CacheStats:
    """Per-request cache usage stats (best-effort)."""

    hits: int = 0
    misses: int = 0
    expired: int = 0
    sets: int = 0
    evictions: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "hits": int(self.hits),
            "misses": int(self.misses),
            "expired": int(self.expired),
            "sets": int(self.sets),
            "evictions": int(self.evictions),
        }


_cache_stats_var: contextvars.ContextVar[CacheStats | None] = contextvars.ContextVar(
    "fairmeet_cache_stats", default=None
)


def _stats() -> CacheStats | None:
    return _cache_stats_var.get()


@contextmanager
def record_cache_stats() -> Iterator[CacheStats]:
    """Capture cache stats within the current context (thread/task-safe)."""

    stats = CacheStats()
    token = _cache_stats_var.set(stats)
    try:
        yield stats
    finally:
        _cache_stats_var.reset(token)


def fingerprint(parties: Iterable[Party], category: str) -> str:
    """Stable key for (sorted eligible party positions, category).

    Party order, ids and labels do not matter; duplicate positions are kept because
    they add a sample to every travel vector.
    """
    positions = sorted(
        (round(p.position.lat, 6), round(p.position.lng, 6))
        for p in parties
        if p.position is not None
    )
    payload = {"positions": positions, "category": normalize_category(category)}
    return sha256(json.dumps(payload, separators=(",", ":")).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CacheEntry:
    created_at_unix: float
    value: list[ScoredVenue]


class ResultCache:
    """An LRU of ranked results keyed by (namespace, fingerprint). Last write wins."""

    def __init__(self, *, max_entries: int = 256, ttl_seconds: int | None = None, enabled: bool = True):
        self._max_entries = max(1, int(max_entries))
        self._ttl_seconds = ttl_seconds
        self._enabled = enabled
        self._entries: OrderedDict[tuple[str, str], CacheEntry] = OrderedDict()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, *, namespace: str = "default") -> list[ScoredVenue] | None:
        """Return a copy of the cached ranking, or None on a miss/expiry."""
        if not self._enabled:
            return None
        st = _stats()
        entry = self._entries.get((namespace, key))
        if entry is None:
            if st:
                st.misses += 1
            return None
        if self._ttl_seconds is not None and time.time() - entry.created_at_unix > self._ttl_seconds:
            self._entries.pop((namespace, key), None)
            if st:
                st.misses += 1
                st.expired += 1
            return None
        self._entries.move_to_end((namespace, key))
        if st:
            st.hits += 1
        return [v.model_copy(deep=True) for v in entry.value]

    def put(self, key: str, value: list[ScoredVenue], *, namespace: str = "default") -> None:
        if not self._enabled:
            return None
        slot = (namespace, key)
        self._entries.pop(slot, None)
        self._entries[slot] = CacheEntry(
            created_at_unix=time.time(), value=[v.model_copy(deep=True) for v in value]
        )
        st = _stats()
        if st:
            st.sets += 1
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
            if st:
                st.evictions += 1

    def clear(self) -> None:
        self._entries.clear()


def policy_namespace(payload: Any) -> str:
    """Short digest of a JSON-serializable policy (used as a cache namespace)."""
    raw = json.dumps(payload, sort_keys=True, default=str)
    return sha256(raw.encode("utf-8")).hexdigest()[:12]
