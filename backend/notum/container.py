"""Explicit wiring of the store, services and messaging for one process."""

from __future__ import annotations

from notum.core.config import Settings, get_settings
from notum.core.logging import get_logger
from notum.db.store import EntityStore
from notum.messaging.bus import MessageBus
from notum.messaging.handlers import register_handlers
from notum.messaging.worker import WorkerBridge
from notum.services import (
    ExportImportService,
    FlashcardService,
    HighlightService,
    ResourceService,
    StudyTrackService,
)
from notum.utils.time import Clock, utc_now

logger = get_logger(__name__)


class Notum:
    """Owns every long-lived object; ``start()`` and ``stop()`` bound their lifetime."""

    def __init__(self, settings: Settings | None = None, clock: Clock = utc_now) -> None:
        self.settings = settings or get_settings()
        self.store = EntityStore(self.settings.db_path, clock=clock)
        self.resources = ResourceService(self.store, clock)
        self.highlights = HighlightService(self.store, clock, self.settings.default_highlight_color)
        self.tracks = StudyTrackService(self.store, clock)
        self.flashcards = FlashcardService(
            self.store,
            clock,
            initial_difficulty=self.settings.initial_difficulty,
            max_interval_days=self.settings.max_interval_days,
        )
        self.worker = WorkerBridge(timeout=self.settings.worker_timeout_seconds)
        self.exporter = ExportImportService(
            self.resources,
            self.highlights,
            self.tracks,
            self.flashcards,
            worker=self.worker,
            clock=clock,
        )
        self.bus = MessageBus(timeout=self.settings.bus_timeout_seconds)
        register_handlers(self.bus, self)

    async def start(self) -> None:
        await self.store.open()
        await self.worker.start()
        await self.bus.start()
        if self.settings.seed_default_templates:
            await self.tracks.seed_default_templates()
        logger.info("Notum started with database %s", self.settings.db_path)

    async def stop(self) -> None:
        await self.bus.stop()
        await self.worker.stop()
        await self.store.close()
        logger.info("Notum stopped")

    async def __aenter__(self) -> "Notum":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


__all__ = ["Notum"]
