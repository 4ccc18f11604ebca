"""Composition of a sustained-rate limiter with a burst pool.

When the primary quota rejects a request, the burst quota gets a chance to
absorb it. Callers always see the primary quota's metadata; the burst pool
stays hidden.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ratewindow.schemas.limits import CheckOptions, Verdict, WindowSpec
from ratewindow.services.limiter import Limiter, coerce_spec


@dataclass(frozen=True)
class LimitTier:
    """A limiter paired with the quota it enforces."""

    limiter: Limiter
    spec: WindowSpec


class BurstyLimiter:
    """Check a primary tier first and fall back to a burst tier on rejection."""

    def __init__(
        self,
        primary: tuple[Limiter, WindowSpec | Mapping[str, Any]],
        burst: tuple[Limiter, WindowSpec | Mapping[str, Any]],
    ) -> None:
        self._primary = LimitTier(primary[0], coerce_spec(primary[1]))
        self._burst = LimitTier(burst[0], coerce_spec(burst[1]))

    def check(
        self,
        key: str,
        options: CheckOptions | Mapping[str, Any] | None = None,
        *,
        cost: int = 1,
    ) -> Verdict:
        """Admit ``key`` if either tier admits it.

        The burst tier is only charged, with the same ``cost``, when the
        primary tier rejects.
        """
        primary = self._primary.limiter.check(key, self._primary.spec, options, cost=cost)
        if primary.allowed:
            return primary

        burst = self._burst.limiter.check(key, self._burst.spec, options, cost=cost)
        if burst.allowed:
            return primary.model_copy(update={"allowed": True, "retry_after_ms": None})

        return primary
