"""pytest configuration for Focusphere tests."""

import os
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add src directory to path so tests can import focusphere
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Set DUCKDB_PATH to :memory: for all tests to ensure test isolation
os.environ["DUCKDB_PATH"] = ":memory:"

# Never reach a real language model from tests
os.environ["FOCUSPHERE_LLM_PROVIDER"] = "stub"
os.environ["FOCUSPHERE_AUTH_MODE"] = "dev"


class FakeClock:
    """Manually advanced clock for time-dependent tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    """A fake clock starting at a fixed UTC instant."""
    return FakeClock()


@pytest.fixture
def test_user_id() -> str:
    return "user-123"


@pytest.fixture
def test_user_id_2() -> str:
    return "user-456"
