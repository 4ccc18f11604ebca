"""Counter store adapters.

This package provides the storage contract the decision core relies on and
the in-process reference implementation. Shared backends (e.g. Redis) plug in
by subclassing ``AbstractCounterStore`` without changing the limiter.
"""

from ratewindow.adapters.store.base import AbstractCounterStore, CounterSnapshot, wall_clock_ms
from ratewindow.adapters.store.in_memory import InMemoryCounterStore

__all__ = [
    "AbstractCounterStore",
    "CounterSnapshot",
    "InMemoryCounterStore",
    "wall_clock_ms",
]
