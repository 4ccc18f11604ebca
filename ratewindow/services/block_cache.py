"""Ephemeral cache of keys that are currently denied.

A limiter holding a BlockCache answers repeat requests from a denied key
without a store round-trip until the key's block expires. Entries are
removed lazily when looked up after expiry.
"""

from __future__ import annotations

import threading


class BlockCache:
    """Thread-safe map of key -> blocked-until (epoch milliseconds)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._blocked: dict[str, int] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._blocked)

    def blocked_until(self, key: str, now: int) -> int | None:
        """Return the block expiry for ``key``, or None when it is not blocked."""
        with self._lock:
            until = self._blocked.get(key)
            if until is None:
                return None
            if until <= now:
                del self._blocked[key]
                return None
            return until

    def block(self, key: str, until: int) -> None:
        with self._lock:
            self._blocked[key] = max(until, self._blocked.get(key, until))

    def unblock(self, key: str) -> None:
        with self._lock:
            self._blocked.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._blocked.clear()
