"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from notum.container import Notum
from notum.messaging.bus import MessageBus
from notum.services import (
    ExportImportService,
    FlashcardService,
    HighlightService,
    ResourceService,
    StudyTrackService,
)


def get_notum(request: Request) -> Notum:
    return request.app.state.notum


def get_resource_service(request: Request) -> ResourceService:
    return get_notum(request).resources


def get_highlight_service(request: Request) -> HighlightService:
    return get_notum(request).highlights


def get_track_service(request: Request) -> StudyTrackService:
    return get_notum(request).tracks


def get_flashcard_service(request: Request) -> FlashcardService:
    return get_notum(request).flashcards


def get_export_service(request: Request) -> ExportImportService:
    return get_notum(request).exporter


def get_bus(request: Request) -> MessageBus:
    return get_notum(request).bus


__all__ = [
    "get_bus",
    "get_export_service",
    "get_flashcard_service",
    "get_highlight_service",
    "get_notum",
    "get_resource_service",
    "get_track_service",
]
