"""Factory for building limiters from settings."""

from __future__ import annotations

import logging

from ratewindow.adapters.store.base import AbstractCounterStore
from ratewindow.adapters.store.in_memory import InMemoryCounterStore
from ratewindow.core.config import LimiterSettings, settings
from ratewindow.schemas.limits import WindowSpec
from ratewindow.services.block_cache import BlockCache
from ratewindow.services.limiter import Limiter

logger = logging.getLogger(__name__)


def create_limiter(
    limiter_settings: LimiterSettings | None = None,
    *,
    store: AbstractCounterStore | None = None,
) -> Limiter:
    """Build a Limiter from configuration.

    When no store is injected, an InMemoryCounterStore is created, owned by
    the returned limiter and closed by ``Limiter.close()``.

    Args:
        limiter_settings: Limiter settings; defaults to the global settings.
        store: Optional shared store to use instead of a new in-memory one.

    Returns:
        Limiter: Configured limiter instance.
    """
    cfg = limiter_settings or settings.limiter

    owns_store = store is None
    if store is None:
        memory_store = InMemoryCounterStore(sweep_interval_ms=cfg.sweep_interval_ms)
        if cfg.background_sweep:
            memory_store.start_sweeper()
        store = memory_store

    block_cache = BlockCache() if cfg.block_cache_enabled else None

    logger.info(
        "rate_limit.limiter_created",
        extra={
            "store": type(store).__name__,
            "algorithm": cfg.algorithm,
            "dry_run": cfg.dry_run,
            "block_cache": block_cache is not None,
        },
    )

    return Limiter(
        store,
        algorithm=cfg.algorithm,
        dry_run=cfg.dry_run,
        block_cache=block_cache,
        block_duration_ms=cfg.block_duration_ms if block_cache is not None else None,
        owns_store=owns_store,
    )


def default_spec(limiter_settings: LimiterSettings | None = None) -> WindowSpec:
    """Quota configured by ``RATEWINDOW_DEFAULT_LIMIT`` / ``RATEWINDOW_DEFAULT_WINDOW_MS``."""
    cfg = limiter_settings or settings.limiter
    return WindowSpec(limit=cfg.default_limit, window_ms=cfg.default_window_ms)
