"""Unit tests for the BurstyLimiter composition."""

import pytest

from ratewindow.adapters.store.in_memory import InMemoryCounterStore
from ratewindow.core.errors import InvalidSpecError
from ratewindow.schemas.limits import WindowSpec
from ratewindow.services.bursty import BurstyLimiter
from ratewindow.services.limiter import Limiter


def _build(clock) -> tuple[BurstyLimiter, InMemoryCounterStore]:
    burst_store = InMemoryCounterStore(clock=clock)
    bursty = BurstyLimiter(
        (Limiter(InMemoryCounterStore(clock=clock), algorithm="fixed_window"), WindowSpec(limit=2, window_ms=1000)),
        (Limiter(burst_store, algorithm="fixed_window"), {"limit": 1, "window_ms": 10_000}),
    )
    return bursty, burst_store


def test_burst_pool_absorbs_overflow(clock) -> None:
    bursty, _ = _build(clock)

    verdicts = [bursty.check("k") for _ in range(4)]

    assert [v.allowed for v in verdicts] == [True, True, True, False]

    absorbed = verdicts[2]
    assert absorbed.limit == 2
    assert absorbed.remaining == 0
    assert absorbed.retry_after_ms is None

    rejected = verdicts[3]
    assert rejected.limit == 2
    assert rejected.retry_after_ms == 1000


def test_burst_pool_untouched_while_primary_allows(clock) -> None:
    bursty, burst_store = _build(clock)

    bursty.check("k")
    bursty.check("k")

    assert burst_store.get("k") is None


def test_burst_pool_outlives_primary_window(clock) -> None:
    bursty, _ = _build(clock)
    for _ in range(3):
        bursty.check("k")

    clock.advance(1000)

    verdicts = [bursty.check("k") for _ in range(3)]
    assert [v.allowed for v in verdicts] == [True, True, False]


def test_cost_is_charged_to_both_tiers(clock) -> None:
    primary_store = InMemoryCounterStore(clock=clock)
    burst_store = InMemoryCounterStore(clock=clock)
    bursty = BurstyLimiter(
        (Limiter(primary_store, algorithm="fixed_window"), WindowSpec(limit=10, window_ms=1000)),
        (Limiter(burst_store, algorithm="fixed_window"), WindowSpec(limit=5, window_ms=10_000)),
    )

    verdicts = [bursty.check("k", cost=5) for _ in range(4)]

    assert [v.allowed for v in verdicts] == [True, True, True, False]
    assert primary_store.get("k").count == 20
    assert burst_store.get("k").count == 10


def test_invalid_tier_spec_rejected() -> None:
    store = InMemoryCounterStore()

    with pytest.raises(InvalidSpecError):
        BurstyLimiter(
            (Limiter(store), {"limit": 0, "window_ms": 1000}),
            (Limiter(store), WindowSpec(limit=1, window_ms=1000)),
        )
