"""Test configuration."""
import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Set test environment before any imports
os.environ["ENV"] = "test"

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from wordgame.services.progress_store import ProgressStore
from wordgame.services.storage import MemoryStorage


class FakeClock:
    """Controllable replacement for datetime.now."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """A clock fixed at a known local time."""
    return FakeClock(datetime(2026, 10, 18, 9, 30, 0))


@pytest.fixture
def storage() -> MemoryStorage:
    """Fresh in-memory storage for each test."""
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage, clock: FakeClock) -> ProgressStore:
    """A progress store over empty storage."""
    return ProgressStore(storage, clock=clock)
