"""Pytest configuration and fixtures shared across all test modules.

Loaded by pytest before any test module, so the environment below is in place
before ``ratekeeper.core.config`` builds its settings.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_ALGORITHM", "fixed_window")
os.environ.setdefault("RATE_LIMIT_LIMIT", "3")
os.environ.setdefault("RATE_LIMIT_WINDOW_MS", "60000")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from ratekeeper.adapters.rate_limit.clock import ManualClock

# Multiple of every window size used in the tests, so wall-aligned windows
# start exactly at START_MS.
START_MS = 1_700_000_000_000


@pytest.fixture
def clock() -> ManualClock:
    """Steppable clock frozen at START_MS."""
    return ManualClock(START_MS)
