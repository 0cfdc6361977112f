"""Bus listeners that route capture and review messages to the services."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from notum.messaging.bus import MessageBus
from notum.models.messages import (
    AddToTrackData,
    ExportDataData,
    GetDueFlashcardsData,
    ImportDataData,
    ReviewFlashcardData,
    SaveHighlightData,
    SaveResourceData,
)

if TYPE_CHECKING:
    from notum.container import Notum


def register_handlers(bus: MessageBus, notum: "Notum") -> None:
    async def save_resource(data: SaveResourceData) -> dict[str, Any]:
        resource = await notum.resources.create_resource(
            data.type, data.url, data.title, data.content, data.metadata
        )
        return {"success": True, "resourceId": resource.id}

    async def save_highlight(data: SaveHighlightData) -> dict[str, Any]:
        resource = await notum.resources.get_resource_by_url(data.url)
        if resource is None:
            resource = await notum.resources.create_resource("page", data.url, data.title)
        highlight = await notum.highlights.create_highlight(
            resource.id,
            data.url,
            data.text,
            data.context,
            data.position,
            data.color,
            data.note,
        )
        return {"success": True, "highlightId": highlight.id, "resourceId": resource.id}

    async def add_to_track(data: AddToTrackData) -> dict[str, Any]:
        await notum.tracks.add_resource_to_track(data.track_id, data.resource_id)
        return {"success": True}

    async def export_data(data: ExportDataData) -> dict[str, Any]:
        bundle = await notum.exporter.export_bundle(data.track_ids)
        return {"success": True, "data": bundle.to_portable()}

    async def import_data(data: ImportDataData) -> dict[str, Any]:
        report = await notum.exporter.import_bundle(data.export_data)
        return {"success": True, "report": report.to_dict()}

    async def review_flashcard(data: ReviewFlashcardData) -> dict[str, Any]:
        card = await notum.flashcards.review_flashcard(data.flashcard_id, data.correct)
        return {"success": True, "flashcard": card.to_portable()}

    async def get_due_flashcards(data: GetDueFlashcardsData) -> dict[str, Any]:
        cards = await notum.flashcards.get_due_flashcards()
        return {"success": True, "flashcards": [card.to_portable() for card in cards]}

    bus.add_listener("SAVE_RESOURCE", save_resource)
    bus.add_listener("SAVE_HIGHLIGHT", save_highlight)
    bus.add_listener("ADD_TO_TRACK", add_to_track)
    bus.add_listener("EXPORT_DATA", export_data)
    bus.add_listener("IMPORT_DATA", import_data)
    bus.add_listener("REVIEW_FLASHCARD", review_flashcard)
    bus.add_listener("GET_DUE_FLASHCARDS", get_due_flashcards)


__all__ = ["register_handlers"]
