import json
from datetime import datetime, timedelta, timezone

import pytest

from fairmeet.config.settings import get_settings
from fairmeet.core.quota import (
    InMemoryQuotaStore,
    JsonFileQuotaStore,
    QuotaGuard,
    QuotaState,
    build_quota_guard,
)
from fairmeet.errors import QuotaExceededError, QuotaExpiredError

EXPIRES = datetime(2027, 1, 7, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _guard(clock: Clock, store=None, **kwargs) -> QuotaGuard:
    return QuotaGuard(
        store or InMemoryQuotaStore(),
        daily_limit=kwargs.pop("daily_limit", 100),
        expires_at=kwargs.pop("expires_at", EXPIRES),
        timezone="UTC",
        clock=clock,
    )


def test_101st_call_on_the_same_day_is_refused():
    clock = Clock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))
    guard = _guard(clock)
    for _ in range(100):
        guard.check_and_reserve()
        guard.record_usage()

    with pytest.raises(QuotaExceededError):
        guard.check_and_reserve()
    assert guard.status()["call_count"] == 100
    assert guard.status()["remaining"] == 0


def test_refusal_does_not_mutate_state():
    clock = Clock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))
    store = InMemoryQuotaStore(QuotaState(date_key="2026-10-19", call_count=100))
    guard = _guard(clock, store)
    for _ in range(3):
        with pytest.raises(QuotaExceededError):
            guard.check_and_reserve()
    assert store.load() == QuotaState(date_key="2026-10-19", call_count=100)


def test_reservation_alone_does_not_consume_quota():
    clock = Clock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))
    guard = _guard(clock, daily_limit=2)
    for _ in range(5):
        guard.check_and_reserve()
    assert guard.status()["call_count"] == 0


def test_day_rollover_resets_the_counter():
    clock = Clock(datetime(2026, 10, 19, 23, 59, tzinfo=timezone.utc))
    store = InMemoryQuotaStore(QuotaState(date_key="2026-10-19", call_count=100))
    guard = _guard(clock, store)
    with pytest.raises(QuotaExceededError):
        guard.check_and_reserve()

    clock.now += timedelta(minutes=2)
    guard.check_and_reserve()
    assert store.load() == QuotaState(date_key="2026-10-20", call_count=0)


def test_call_after_expiry_fails_even_with_zero_count():
    clock = Clock(EXPIRES + timedelta(seconds=1))
    guard = _guard(clock)
    with pytest.raises(QuotaExpiredError):
        guard.check_and_reserve()
    assert guard.status()["expired"] is True


def test_expiry_is_terminal():
    clock = Clock(EXPIRES + timedelta(days=1))
    guard = _guard(clock)
    with pytest.raises(QuotaExpiredError):
        guard.check_and_reserve()

    # Even if the clock moves back, the guard stays expired.
    clock.now = EXPIRES - timedelta(days=30)
    for _ in range(3):
        with pytest.raises(QuotaExpiredError):
            guard.check_and_reserve()


def test_check_expiry_leaves_the_counter_alone():
    clock = Clock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))
    store = InMemoryQuotaStore(QuotaState("2026-10-18", 7))
    guard = _guard(clock, store)

    guard.check_expiry()
    assert store.load() == QuotaState("2026-10-18", 7)

    clock.now = EXPIRES + timedelta(seconds=1)
    with pytest.raises(QuotaExpiredError):
        guard.check_expiry()
    clock.now = EXPIRES - timedelta(days=1)
    with pytest.raises(QuotaExpiredError):
        guard.check_and_reserve()
    assert store.load() == QuotaState("2026-10-18", 7)


def test_record_usage_never_exceeds_the_limit():
    clock = Clock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))
    guard = _guard(clock, daily_limit=1)
    guard.record_usage()
    guard.record_usage()
    assert guard.status()["call_count"] == 1


def test_day_key_uses_the_configured_timezone():
    # 23:30 UTC on the 19th is already the 20th in Taipei.
    clock = Clock(datetime(2026, 10, 19, 23, 30, tzinfo=timezone.utc))
    guard = QuotaGuard(InMemoryQuotaStore(), daily_limit=5, timezone="Asia/Taipei", clock=clock)
    guard.record_usage()
    assert guard.status()["date_key"] == "2026-10-20"


def test_file_store_survives_a_restart(tmp_path):
    path = tmp_path / "quota.json"
    clock = Clock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))
    first = _guard(clock, JsonFileQuotaStore(path), daily_limit=3)
    for _ in range(3):
        first.check_and_reserve()
        first.record_usage()

    assert json.loads(path.read_text(encoding="utf-8")) == {"date_key": "2026-10-19", "call_count": 3}

    restarted = _guard(clock, JsonFileQuotaStore(path), daily_limit=3)
    with pytest.raises(QuotaExceededError):
        restarted.check_and_reserve()


def test_file_store_ignores_a_corrupt_file(tmp_path):
    path = tmp_path / "quota.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonFileQuotaStore(path).load() is None


def test_build_quota_guard_uses_settings(tmp_path):
    settings = get_settings()
    quota = settings.quota.model_copy(update={"path": str(tmp_path / "q.json"), "daily_limit": 7})
    settings = settings.model_copy(update={"quota": quota})
    clock = Clock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))

    guard = build_quota_guard(settings, clock=clock)
    assert guard.daily_limit == 7
    guard.record_usage()
    assert (tmp_path / "q.json").exists()
