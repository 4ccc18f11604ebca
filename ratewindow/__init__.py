"""Request-admission decisions over fixed and sliding windows.

Typical use::

    store = InMemoryCounterStore()
    limiter = Limiter(store)
    verdict = limiter.check("user:42", WindowSpec(limit=100, window_ms=60_000))
    if not verdict.allowed:
        ...  # render 429 with verdict.remaining / verdict.reset_at
"""

import logging

from ratewindow.adapters.store import AbstractCounterStore, CounterSnapshot, InMemoryCounterStore
from ratewindow.core.errors import (
    AppError,
    InvalidSpecError,
    StoreAppError,
    StoreRaceError,
    StoreUnavailableError,
)
from ratewindow.core.logging import configure_logging
from ratewindow.schemas.limits import CheckOptions, Verdict, WindowSpec
from ratewindow.services.algorithms import FixedWindowAlgorithm, SlidingWindowAlgorithm, WindowAlgorithm
from ratewindow.services.block_cache import BlockCache
from ratewindow.services.bursty import BurstyLimiter
from ratewindow.services.factory import create_limiter, default_spec
from ratewindow.services.limiter import Limiter

__all__ = [
    "AbstractCounterStore",
    "AppError",
    "BlockCache",
    "BurstyLimiter",
    "CheckOptions",
    "CounterSnapshot",
    "FixedWindowAlgorithm",
    "InMemoryCounterStore",
    "InvalidSpecError",
    "Limiter",
    "SlidingWindowAlgorithm",
    "StoreAppError",
    "StoreRaceError",
    "StoreUnavailableError",
    "Verdict",
    "WindowAlgorithm",
    "WindowSpec",
    "configure_logging",
    "create_limiter",
    "default_spec",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
