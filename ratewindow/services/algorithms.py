"""Window algorithms turning a counter snapshot into a verdict.

Both algorithms are pure: they never touch the store and never block. The
limiter hands them the snapshot returned by the store's atomic increment
together with the store's current time.

- Fixed window: the raw count is the effective count. Cheap, but admits up
  to ``2 * limit`` requests across a window boundary.
- Sliding window (default): the previous window's final count is weighted by
  the share of it still inside the trailing ``window_ms``, smoothing bursts
  at the boundary.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

from ratewindow.adapters.store.base import CounterSnapshot
from ratewindow.core.errors import InvalidSpecError
from ratewindow.schemas.limits import Verdict, WindowSpec


def window_reset_at(snapshot: CounterSnapshot, spec: WindowSpec) -> int:
    """Epoch milliseconds at which the snapshot's window ends."""
    return snapshot.window_start + spec.window_ms


def previous_window_weight(elapsed_ms: int, window_ms: int) -> float:
    """Share of the previous window still inside the trailing window.

    1.0 at the very start of the current window, 0.0 once a full window has
    elapsed. Negative elapsed times (clock skew between hosts) count as 0.
    """
    elapsed = max(0, elapsed_ms)
    return max(0.0, 1.0 - elapsed / window_ms)


def retry_after_ms(reset_at: int, now: int) -> int:
    return max(0, reset_at - now)


class WindowAlgorithm(ABC):
    """Interface for window algorithms."""

    name: str

    @abstractmethod
    def evaluate(self, snapshot: CounterSnapshot, spec: WindowSpec, now: int) -> Verdict:
        """Decide admission for the request that produced ``snapshot``.

        Args:
            snapshot: Counter state right after this request's increment.
            spec: Quota being enforced.
            now: Current time in epoch milliseconds (store clock).

        Returns:
            Verdict with reason "limit".
        """
        raise NotImplementedError


class FixedWindowAlgorithm(WindowAlgorithm):
    name = "fixed_window"

    def evaluate(self, snapshot: CounterSnapshot, spec: WindowSpec, now: int) -> Verdict:
        count = snapshot.count
        allowed = count <= spec.limit
        reset_at = window_reset_at(snapshot, spec)
        return Verdict(
            allowed=allowed,
            limit=spec.limit,
            remaining=max(0, spec.limit - count),
            reset_at=reset_at,
            current=count,
            retry_after_ms=None if allowed else retry_after_ms(reset_at, now),
        )


class SlidingWindowAlgorithm(WindowAlgorithm):
    name = "sliding_window"

    def evaluate(self, snapshot: CounterSnapshot, spec: WindowSpec, now: int) -> Verdict:
        weight = previous_window_weight(now - snapshot.window_start, spec.window_ms)
        current = snapshot.count + snapshot.previous_count * weight
        allowed = current <= spec.limit
        reset_at = window_reset_at(snapshot, spec)
        return Verdict(
            allowed=allowed,
            limit=spec.limit,
            remaining=max(0, math.floor(spec.limit - current)),
            reset_at=reset_at,
            current=current,
            retry_after_ms=None if allowed else retry_after_ms(reset_at, now),
        )


ALGORITHMS: dict[str, WindowAlgorithm] = {
    FixedWindowAlgorithm.name: FixedWindowAlgorithm(),
    SlidingWindowAlgorithm.name: SlidingWindowAlgorithm(),
}


def get_algorithm(name: str | WindowAlgorithm) -> WindowAlgorithm:
    """Resolve an algorithm by name ("sliding_window" or "fixed_window").

    Raises:
        InvalidSpecError: If the name is unknown.
    """
    if isinstance(name, WindowAlgorithm):
        return name

    algorithm = ALGORITHMS.get(str(name).strip().lower().replace("-", "_"))
    if algorithm is None:
        raise InvalidSpecError(
            code="invalid_algorithm",
            message=(
                f"Unknown algorithm: '{name}'. Supported algorithms: "
                + ", ".join(sorted(ALGORITHMS))
            ),
        )
    return algorithm
