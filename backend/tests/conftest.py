"""Test fixtures for Notum."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from notum.core.config import get_settings  # noqa: E402
from notum.db.store import EntityStore  # noqa: E402
from notum.services import (  # noqa: E402
    ExportImportService,
    FlashcardService,
    HighlightService,
    ResourceService,
    StudyTrackService,
)

START = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now


class Services:
    def __init__(self, store: EntityStore, clock: FakeClock) -> None:
        self.store = store
        self.clock = clock
        self.resources = ResourceService(store, clock)
        self.highlights = HighlightService(store, clock)
        self.tracks = StudyTrackService(store, clock)
        self.flashcards = FlashcardService(store, clock)
        self.exporter = ExportImportService(
            self.resources, self.highlights, self.tracks, self.flashcards, clock=clock
        )


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset cached settings and environment between tests."""
    monkeypatch.setenv("NOTUM_DB_PATH", str(tmp_path / "notum.db"))
    monkeypatch.delenv("NOTUM_CONFIG", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def store(tmp_path: Path, clock: FakeClock) -> EntityStore:
    entity_store = EntityStore(tmp_path / "store.db", clock=clock)
    await entity_store.open()
    yield entity_store
    await entity_store.close()


@pytest.fixture
def services(store: EntityStore, clock: FakeClock) -> Services:
    return Services(store, clock)


@pytest_asyncio.fixture
async def other_services(tmp_path: Path, clock: FakeClock) -> Services:
    """A second, empty store for import tests."""
    entity_store = EntityStore(tmp_path / "other.db", clock=clock)
    await entity_store.open()
    yield Services(entity_store, clock)
    await entity_store.close()


@pytest.fixture
def position() -> dict[str, object]:
    return {"startOffset": 0, "endOffset": 12, "selector": "p:nth-of-type(1)"}
