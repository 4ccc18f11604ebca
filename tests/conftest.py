"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins RATEWINDOW_ENV to "testing" so no developer .env file leaks into
the settings used by the suite.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["RATEWINDOW_ENV"] = "testing"

# Keep limiter defaults predictable regardless of the host environment
os.environ.setdefault("RATEWINDOW_DEFAULT_LIMIT", "60")
os.environ.setdefault("RATEWINDOW_DEFAULT_WINDOW_MS", "60000")

import pytest  # noqa: E402


class FakeClock:
    """Deterministic millisecond clock used to drive window rolls and expiry."""

    def __init__(self, start: int = 1_000_000) -> None:
        self.current = start

    def __call__(self) -> int:
        return self.current

    def advance(self, ms: int) -> None:
        self.current += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
