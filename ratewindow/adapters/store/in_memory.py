"""In-memory counter store (reference implementation).

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards the whole map, so increment-and-roll is atomic.
- Entries expire passively once ``2 * window_ms`` has passed since their
  window started: checked lazily on access, swept in bulk at most once per
  ``sweep_interval_ms``, and optionally swept by a daemon thread.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

from ratewindow.adapters.store.base import AbstractCounterStore, CounterSnapshot, wall_clock_ms

logger = logging.getLogger(__name__)


@dataclass
class _CounterRecord:
    count: int
    window_start: int
    previous_count: int
    window_ms: int

    def expired(self, now: int) -> bool:
        # One grace window is kept so the sliding algorithm can still weight it.
        return now - self.window_start >= 2 * self.window_ms

    def snapshot(self) -> CounterSnapshot:
        return CounterSnapshot(
            count=self.count,
            window_start=self.window_start,
            previous_count=self.previous_count,
        )


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store backed by a dict guarded by a single lock.

    Create one per process (or per independent quota domain) and inject it
    into every Limiter that should share counters. Call ``close()`` at
    shutdown to stop the optional sweeper thread.

    Important:
        This store is per-process only. If the host runs several workers,
        each worker enforces its own independent limits.
    """

    supports_decrement = True

    def __init__(
        self,
        *,
        clock: Callable[[], int] = wall_clock_ms,
        sweep_interval_ms: int = 60_000,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            clock: Time source returning UNIX time in milliseconds.
            sweep_interval_ms: Minimum delay between two full expiry sweeps.

        Raises:
            ValueError: If sweep_interval_ms is invalid.
        """
        if sweep_interval_ms < 1:
            raise ValueError("sweep_interval_ms must be >= 1")

        super().__init__(clock=clock)
        self._sweep_interval_ms = sweep_interval_ms
        self._lock = threading.RLock()
        self._records: dict[str, _CounterRecord] = {}
        self._last_sweep = self.now()
        self._evictions = 0
        self._sweeps = 0
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryCounterStore(sweep_interval_ms={self._sweep_interval_ms}, "
            f"size={len(self._records)}, evictions={self._evictions})"
        )

    def increment(self, key: str, window_ms: int, cost: int = 1) -> CounterSnapshot:
        """Charge ``cost`` points to ``key``, rolling the window when it has expired.

        Args:
            key: Rate limit key.
            window_ms: Window size in milliseconds.
            cost: Points consumed by this request.

        Returns:
            CounterSnapshot with the state after this increment.

        Raises:
            ValueError: If key is empty, or window_ms or cost is invalid.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if cost < 1:
            raise ValueError("cost must be >= 1")

        with self._lock:
            now = self.now()
            self._maybe_sweep_locked(now)

            record = self._records.get(key)
            if record is None or now - record.window_start >= 2 * window_ms:
                record = _CounterRecord(
                    count=cost,
                    window_start=now,
                    previous_count=0,
                    window_ms=window_ms,
                )
                self._records[key] = record
            elif now - record.window_start >= window_ms:
                record.previous_count = record.count
                record.count = cost
                record.window_start = now
                record.window_ms = window_ms
            else:
                record.count += cost
                record.window_ms = window_ms

            return record.snapshot()

    def get(self, key: str) -> CounterSnapshot | None:
        with self._lock:
            record = self._records.get(key)
            if record is None or record.expired(self.now()):
                return None
            return record.snapshot()

    def reset(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def decrement(self, key: str) -> None:
        """Remove one request from the current window, never below zero."""
        with self._lock:
            record = self._records.get(key)
            if record is None or record.expired(self.now()):
                return
            if record.count > 0:
                record.count -= 1

    def reset_all(self) -> None:
        with self._lock:
            self._records.clear()

    def sweep(self) -> int:
        """Drop every expired record.

        Returns:
            Number of records removed.
        """
        with self._lock:
            return self._sweep_locked(self.now())

    def stats(self) -> dict[str, int | bool]:
        """Return lightweight store metrics without exposing keys."""

        with self._lock:
            return {
                "entries": len(self._records),
                "evictions": self._evictions,
                "sweeps": self._sweeps,
                "sweeper_running": self._sweeper is not None and self._sweeper.is_alive(),
            }

    def start_sweeper(self) -> None:
        """Run ``sweep()`` every ``sweep_interval_ms`` on a daemon thread."""
        with self._lock:
            if self._sweeper is not None and self._sweeper.is_alive():
                return
            self._stop.clear()
            self._sweeper = threading.Thread(
                target=self._run_sweeper,
                name="ratewindow-sweeper",
                daemon=True,
            )
            self._sweeper.start()

    def close(self) -> None:
        """Stop the sweeper thread and drop all state."""
        self._stop.set()
        sweeper = self._sweeper
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join(timeout=self._sweep_interval_ms / 1000)
        with self._lock:
            self._sweeper = None
            self._records.clear()

    def _run_sweeper(self) -> None:
        interval_s = self._sweep_interval_ms / 1000
        while not self._stop.wait(interval_s):
            self.sweep()

    def _maybe_sweep_locked(self, now: int) -> None:
        if now - self._last_sweep >= self._sweep_interval_ms:
            self._sweep_locked(now)

    def _sweep_locked(self, now: int) -> int:
        expired_keys = [k for k, record in self._records.items() if record.expired(now)]
        for key in expired_keys:
            del self._records[key]
        self._evictions += len(expired_keys)
        self._sweeps += 1
        self._last_sweep = now

        if expired_keys:
            logger.debug(
                "store.sweep",
                extra={
                    "evicted": len(expired_keys),
                    "size": len(self._records),
                },
            )
        return len(expired_keys)
