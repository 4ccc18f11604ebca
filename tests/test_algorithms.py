"""Unit tests for the fixed and sliding window algorithms."""

import pytest

from ratewindow.adapters.store.base import CounterSnapshot
from ratewindow.core.errors import InvalidSpecError
from ratewindow.schemas.limits import WindowSpec
from ratewindow.services.algorithms import (
    FixedWindowAlgorithm,
    SlidingWindowAlgorithm,
    get_algorithm,
    previous_window_weight,
)


def test_fixed_window_allows_up_to_limit() -> None:
    spec = WindowSpec(limit=3, window_ms=5000)
    verdict = FixedWindowAlgorithm().evaluate(
        CounterSnapshot(count=3, window_start=0), spec, now=2
    )

    assert verdict.allowed is True
    assert verdict.remaining == 0
    assert verdict.current == 3
    assert verdict.reset_at == 5000
    assert verdict.retry_after_ms is None
    assert verdict.reason == "limit"


def test_fixed_window_denies_over_limit_and_ignores_previous() -> None:
    spec = WindowSpec(limit=3, window_ms=5000)
    verdict = FixedWindowAlgorithm().evaluate(
        CounterSnapshot(count=4, window_start=0, previous_count=100), spec, now=3
    )

    assert verdict.allowed is False
    assert verdict.remaining == 0
    assert verdict.current == 4
    assert verdict.retry_after_ms == 4997


def test_sliding_window_boundary_law() -> None:
    spec = WindowSpec(limit=10, window_ms=60_000)
    verdict = SlidingWindowAlgorithm().evaluate(
        CounterSnapshot(count=1, window_start=0, previous_count=10), spec, now=30_000
    )

    assert verdict.current == pytest.approx(6)
    assert verdict.allowed is True
    assert verdict.remaining == 4
    assert verdict.reset_at == 60_000


def test_sliding_window_counts_full_previous_window_at_start() -> None:
    spec = WindowSpec(limit=10, window_ms=60_000)
    verdict = SlidingWindowAlgorithm().evaluate(
        CounterSnapshot(count=1, window_start=0, previous_count=10), spec, now=0
    )

    assert verdict.current == pytest.approx(11)
    assert verdict.allowed is False
    assert verdict.remaining == 0
    assert verdict.retry_after_ms == 60_000


def test_sliding_window_remaining_is_floored() -> None:
    spec = WindowSpec(limit=10, window_ms=1000)
    verdict = SlidingWindowAlgorithm().evaluate(
        CounterSnapshot(count=2, window_start=0, previous_count=5), spec, now=300
    )

    # 2 + 5 * 0.7 = 5.5
    assert verdict.current == pytest.approx(5.5)
    assert verdict.remaining == 4


def test_sliding_window_without_previous_matches_raw_count() -> None:
    spec = WindowSpec(limit=2, window_ms=1000)
    algorithm = SlidingWindowAlgorithm()

    assert algorithm.evaluate(CounterSnapshot(count=2, window_start=0), spec, now=10).allowed is True
    assert algorithm.evaluate(CounterSnapshot(count=3, window_start=0), spec, now=10).allowed is False


@pytest.mark.parametrize(
    ("elapsed_ms", "expected"),
    [
        (0, 1.0),
        (250, 0.75),
        (1000, 0.0),
        (5000, 0.0),
        (-200, 1.0),
    ],
)
def test_previous_window_weight(elapsed_ms: int, expected: float) -> None:
    assert previous_window_weight(elapsed_ms, 1000) == pytest.approx(expected)


def test_clock_skew_never_inflates_current_beyond_full_previous() -> None:
    spec = WindowSpec(limit=10, window_ms=1000)
    verdict = SlidingWindowAlgorithm().evaluate(
        CounterSnapshot(count=1, window_start=5000, previous_count=4), spec, now=4000
    )

    assert verdict.current == pytest.approx(5)
    assert verdict.retry_after_ms is None


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("sliding_window", SlidingWindowAlgorithm),
        ("fixed_window", FixedWindowAlgorithm),
        ("Fixed-Window", FixedWindowAlgorithm),
    ],
)
def test_get_algorithm_by_name(name: str, expected: type) -> None:
    assert isinstance(get_algorithm(name), expected)


def test_get_algorithm_passes_instances_through() -> None:
    algorithm = FixedWindowAlgorithm()
    assert get_algorithm(algorithm) is algorithm


def test_get_algorithm_rejects_unknown_name() -> None:
    with pytest.raises(InvalidSpecError) as exc_info:
        get_algorithm("token_bucket")

    assert exc_info.value.code == "invalid_algorithm"
    assert "token_bucket" in exc_info.value.message


@pytest.mark.parametrize("algorithm", [FixedWindowAlgorithm(), SlidingWindowAlgorithm()])
def test_retry_after_only_set_on_denial(algorithm) -> None:
    spec = WindowSpec(limit=2, window_ms=1000)

    allowed = algorithm.evaluate(CounterSnapshot(count=2, window_start=0), spec, now=400)
    denied = algorithm.evaluate(CounterSnapshot(count=3, window_start=0), spec, now=400)

    assert allowed.retry_after_ms is None
    assert denied.retry_after_ms == 600
