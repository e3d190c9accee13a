from datetime import UTC, datetime

import pytest

from lexis.infrastructure.adapters.stores import MemoryStore
from lexis.infrastructure.adapters.word_repository import KeyValueWordRepository


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def now():
    return datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def repo(store):
    return KeyValueWordRepository(store)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/data
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "LEXIS_STORE_BACKEND",
        "LEXIS_DATA_FILE",
        "LEXIS_SCHEDULER",
        "LEXIS_RETRY_ON_MISTAKE",
        "LEXIS_RETRY_ON_SKIP",
        "LEXIS_SESSION_LIMIT",
    ):
        monkeypatch.delenv(var, raising=False)
    return home
