"""Counter store interfaces.

The limiter depends on this abstraction (not the concrete implementation) so
storage backends can be swapped (in-memory, or a shared key-value service)
by injecting a different store at construction time.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable


def wall_clock_ms() -> int:
    """Return UNIX time in milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CounterSnapshot:
    """State of one key's counter, as seen right after an increment.

    Attributes:
        count: Requests counted in the current window (>= 1 after increment).
        window_start: Epoch milliseconds at which the current window began.
        previous_count: Final count of the window before this one (0 if none).
    """

    count: int
    window_start: int
    previous_count: int = 0


class AbstractCounterStore(ABC):
    """Interface for counter stores.

    Implementations must make ``increment`` atomic per key: concurrent
    increments on one key observe distinct counts, and rolling an expired
    window (count -> previous_count, count = 1, window_start = now) happens
    in the same step as the increment.

    A backend that can only offer best-effort atomicity must set ``atomic``
    to False so callers are told about the relaxed precision.
    """

    atomic: bool = True
    supports_decrement: bool = False

    def __init__(self, *, clock: Callable[[], int] = wall_clock_ms) -> None:
        """Initialize the store.

        Args:
            clock: Time source returning UNIX time in milliseconds.
        """
        self._clock = clock

    def now(self) -> int:
        """Current time in epoch milliseconds, as seen by this store."""
        return int(self._clock())

    @abstractmethod
    def increment(self, key: str, window_ms: int, cost: int = 1) -> CounterSnapshot:
        """Atomically charge ``cost`` points to ``key`` and return the new state.

        Args:
            key: Rate limit key.
            window_ms: Window size in milliseconds.
            cost: Weight of the request (>= 1); a rolled window starts at ``cost``.

        Returns:
            CounterSnapshot reflecting the state after the increment.

        Raises:
            StoreUnavailableError: If the backend cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, key: str) -> CounterSnapshot | None:
        """Read the current state without rolling or extending the window.

        For introspection only; never use it to decide admission.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self, key: str) -> None:
        """Clear all state for ``key``; the next increment opens a fresh window."""
        raise NotImplementedError

    def decrement(self, key: str) -> None:
        """Give back one request in the current window.

        Optional capability. The default is a no-op; callers must not rely on
        it for correctness. Never adjusts ``previous_count``.
        """
        return None

    def reset_all(self) -> None:
        """Clear every key. Optional; the default is a no-op."""
        return None

    def close(self) -> None:
        """Release resources held by the store (timers, connections)."""
        return None
