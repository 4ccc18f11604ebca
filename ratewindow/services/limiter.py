"""Public decision entry point.

The Limiter turns (key, quota, options) into a Verdict:

1. Validate the key and quota (InvalidSpecError, before any store access).
2. Honour caller short-circuits: ``skip``, allowlist, denylist, block cache.
3. Charge the request with exactly one atomic ``store.increment``.
4. Let the configured window algorithm decide.
5. Apply ``dry_run`` (count, but never report blocked).

Store failures surface as StoreUnavailableError. The limiter never retries
and never fails open on its own: that policy belongs to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Union

from pydantic import ValidationError

from ratewindow.adapters.store.base import AbstractCounterStore, CounterSnapshot
from ratewindow.core.errors import AppError, InvalidSpecError, StoreRaceError, StoreUnavailableError
from ratewindow.core.logging import hash_key
from ratewindow.schemas.limits import CheckOptions, Verdict, VerdictReason, WindowSpec
from ratewindow.services.algorithms import WindowAlgorithm, get_algorithm
from ratewindow.services.block_cache import BlockCache

logger = logging.getLogger(__name__)

KeyMatcher = Union[Iterable[str], Callable[[str], bool]]


def _as_predicate(matcher: KeyMatcher | None) -> Callable[[str], bool] | None:
    if matcher is None:
        return None
    if callable(matcher):
        return matcher
    keys = frozenset(matcher)
    return keys.__contains__


def _validate_key(key: str) -> str:
    if not isinstance(key, str) or not key:
        raise InvalidSpecError(
            code="invalid_key",
            message="key must be a non-empty string",
        )
    return key


def _validate_points(points: int, field: str) -> int:
    if isinstance(points, bool) or not isinstance(points, int) or points < 1:
        raise InvalidSpecError(
            code="invalid_spec",
            message=f"{field} must be an integer >= 1",
            details={"field": field},
        )
    return points


def coerce_spec(spec: WindowSpec | Mapping[str, Any]) -> WindowSpec:
    """Validate a quota given as a WindowSpec or a mapping.

    Raises:
        InvalidSpecError: If limit or window_ms is missing or not positive.
    """
    try:
        if isinstance(spec, WindowSpec):
            return WindowSpec.model_validate(spec.model_dump())
        return WindowSpec.model_validate(spec)
    except ValidationError as exc:
        raise InvalidSpecError(
            code="invalid_spec",
            message="limit and window_ms must be positive integers",
            details={
                "hint": "use WindowSpec(limit=..., window_ms=...) with values >= 1",
                "context": {"errors": exc.errors(include_url=False)},
            },
        ) from exc


def _coerce_options(options: CheckOptions | Mapping[str, Any] | None) -> CheckOptions:
    if options is None:
        return CheckOptions()
    if isinstance(options, CheckOptions):
        return options
    try:
        return CheckOptions.model_validate(options)
    except ValidationError as exc:
        raise InvalidSpecError(
            code="invalid_options",
            message="options accept only boolean dry_run and skip flags",
        ) from exc


class Limiter:
    """Admission decisions for one counter store.

    Stateless per request: all counters live in the injected store. Several
    limiters may share one store deliberately; unrelated limiters should be
    given separate stores.
    """

    def __init__(
        self,
        store: AbstractCounterStore,
        *,
        algorithm: str | WindowAlgorithm = "sliding_window",
        dry_run: bool = False,
        allowlist: KeyMatcher | None = None,
        denylist: KeyMatcher | None = None,
        block_cache: BlockCache | None = None,
        block_duration_ms: int | None = None,
        owns_store: bool = False,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Counter store shared by every check of this limiter.
            algorithm: "sliding_window" (default), "fixed_window" or an instance.
            dry_run: Treat every check as a dry run.
            allowlist: Keys (or a predicate) that are always admitted without counting.
            denylist: Keys (or a predicate) that are always rejected without counting.
            block_cache: Cache used to reject denied keys without store access.
            block_duration_ms: Ban length for denied keys; defaults to the window reset.
            owns_store: Close the store when the limiter is closed.

        Raises:
            InvalidSpecError: If the algorithm is unknown or block_duration_ms is invalid.
        """
        if block_duration_ms is not None and block_duration_ms < 1:
            raise InvalidSpecError(
                code="invalid_spec",
                message="block_duration_ms must be >= 1",
            )
        if block_duration_ms is not None and block_cache is None:
            block_cache = BlockCache()

        self._store = store
        self._algorithm = get_algorithm(algorithm)
        self._dry_run = dry_run
        self._is_allowlisted = _as_predicate(allowlist)
        self._is_denylisted = _as_predicate(denylist)
        self._block_cache = block_cache
        self._block_duration_ms = block_duration_ms
        self._owns_store = owns_store

        if not store.atomic:
            logger.warning(
                "rate_limit.store_not_atomic",
                extra={
                    "store": type(store).__name__,
                    "hint": "counts may be imprecise under concurrent access",
                },
            )

    @property
    def store(self) -> AbstractCounterStore:
        return self._store

    @property
    def algorithm(self) -> WindowAlgorithm:
        return self._algorithm

    def check(
        self,
        key: str,
        spec: WindowSpec | Mapping[str, Any],
        options: CheckOptions | Mapping[str, Any] | None = None,
        *,
        cost: int = 1,
    ) -> Verdict:
        """Decide whether the request identified by ``key`` is admitted.

        Args:
            key: Opaque rate limit key, resolved by the caller.
            spec: Quota to enforce.
            options: Caller-evaluated ``dry_run`` / ``skip`` flags.
            cost: Points this request consumes from the quota.

        Returns:
            Verdict for this request.

        Raises:
            InvalidSpecError: If the key, quota, options or cost are invalid.
            StoreUnavailableError: If the store fails.
            StoreRaceError: If the store returns impossible counter state.
        """
        key = _validate_key(key)
        window = coerce_spec(spec)
        opts = _coerce_options(options)
        cost = _validate_points(cost, "cost")
        dry_run = opts.dry_run or self._dry_run

        if opts.skip:
            return self._bypass(window, "skipped")
        if self._is_allowlisted is not None and self._is_allowlisted(key):
            return self._bypass(window, "allowlisted")
        if self._is_denylisted is not None and self._is_denylisted(key):
            now = self._store.now()
            verdict = self._rejection(window, now + window.window_ms, now, "denylisted")
            return self._finish(key, window, verdict, dry_run)

        if self._block_cache is not None:
            now = self._store.now()
            until = self._block_cache.blocked_until(key, now)
            if until is not None:
                verdict = self._rejection(window, until, now, "blocked")
                return self._finish(key, window, verdict, dry_run)

        snapshot, now = self._increment(key, window, cost)
        verdict = self._algorithm.evaluate(snapshot, window, now)

        if not verdict.allowed and not dry_run and self._block_cache is not None:
            if self._block_duration_ms is not None:
                until = now + self._block_duration_ms
                verdict = verdict.model_copy(
                    update={"reset_at": until, "retry_after_ms": self._block_duration_ms}
                )
            else:
                until = verdict.reset_at
            self._block_cache.block(key, until)

        return self._finish(key, window, verdict, dry_run)

    def penalty(self, key: str, spec: WindowSpec | Mapping[str, Any], points: int = 1) -> None:
        """Charge ``points`` to ``key`` in one increment, without making a decision."""
        key = _validate_key(key)
        window = coerce_spec(spec)
        points = _validate_points(points, "points")
        self._increment(key, window, points)

    def reward(self, key: str, points: int = 1) -> None:
        """Give back ``points`` requests in the current window, if the store supports it."""
        key = _validate_key(key)
        points = _validate_points(points, "points")
        if not self._store.supports_decrement:
            logger.debug(
                "rate_limit.reward_unsupported",
                extra={"store": type(self._store).__name__, "key_hash": hash_key(key)},
            )
            return
        for _ in range(points):
            self._call_store("decrement", key, self._store.decrement, key)

    def reset(self, key: str) -> None:
        """Clear the counters (and any block) for ``key``."""
        key = _validate_key(key)
        if self._block_cache is not None:
            self._block_cache.unblock(key)
        self._call_store("reset", key, self._store.reset, key)

    def close(self) -> None:
        if self._block_cache is not None:
            self._block_cache.clear()
        if self._owns_store:
            self._store.close()

    def _increment(self, key: str, window: WindowSpec, cost: int = 1) -> tuple[CounterSnapshot, int]:
        snapshot = self._call_store(
            "increment", key, self._store.increment, key, window.window_ms, cost
        )
        now = self._store.now()
        if snapshot.count < cost or snapshot.previous_count < 0:
            raise StoreRaceError(
                code="store_race",
                message="store returned counter state that cannot follow an increment",
                details={
                    "store": type(self._store).__name__,
                    "key_hash": hash_key(key),
                    "context": {
                        "cost": cost,
                        "count": snapshot.count,
                        "previous_count": snapshot.previous_count,
                    },
                },
            )
        return snapshot, now

    def _call_store(self, operation: str, key: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except AppError:
            raise
        except Exception as exc:
            logger.error(
                "rate_limit.store_unavailable",
                extra={
                    "store": type(self._store).__name__,
                    "operation": operation,
                    "key_hash": hash_key(key),
                    "error_type": type(exc).__name__,
                },
            )
            raise StoreUnavailableError(
                code="store_unavailable",
                message=f"counter store failed during {operation}",
                details={
                    "store": type(self._store).__name__,
                    "operation": operation,
                    "cause": type(exc).__name__,
                },
            ) from exc

    def _bypass(self, window: WindowSpec, reason: VerdictReason) -> Verdict:
        return Verdict(
            allowed=True,
            limit=window.limit,
            remaining=window.limit,
            reset_at=self._store.now() + window.window_ms,
            current=0,
            reason=reason,
        )

    @staticmethod
    def _rejection(window: WindowSpec, until: int, now: int, reason: VerdictReason) -> Verdict:
        return Verdict(
            allowed=False,
            limit=window.limit,
            remaining=0,
            reset_at=until,
            current=0,
            reason=reason,
            retry_after_ms=max(0, until - now),
        )

    def _finish(self, key: str, window: WindowSpec, verdict: Verdict, dry_run: bool) -> Verdict:
        log_extra = {
            "key_hash": hash_key(key),
            "algorithm": self._algorithm.name,
            "reason": verdict.reason,
            "limit": verdict.limit,
            "remaining": verdict.remaining,
            "current": verdict.current,
            "window_ms": window.window_ms,
        }

        if verdict.allowed:
            logger.debug("rate_limit.allowed", extra=log_extra)
            return verdict

        if dry_run:
            logger.info("rate_limit.dry_run", extra=log_extra)
            return verdict.model_copy(update={"allowed": True, "retry_after_ms": None})

        logger.warning(
            "rate_limit.exceeded",
            extra={**log_extra, "retry_after_ms": verdict.retry_after_ms},
        )
        return verdict
