"""User annotations anchored to a resource."""

from __future__ import annotations

from typing import Any, Mapping

from notum.core.errors import NotFoundError
from notum.core.logging import get_logger
from notum.core.metrics import OPERATION_COUNT
from notum.db.store import EntityStore
from notum.models.entities import Highlight, HighlightPosition
from notum.services.cascade import delete_highlight_tree
from notum.utils.ids import new_id
from notum.utils.time import Clock, utc_now

logger = get_logger(__name__)

COLLECTION = "highlights"
DEFAULT_COLOR = "#ffff00"


class HighlightService:
    def __init__(
        self,
        store: EntityStore,
        clock: Clock = utc_now,
        default_color: str = DEFAULT_COLOR,
    ) -> None:
        self.store = store
        self._clock = clock
        self.default_color = default_color

    async def create_highlight(
        self,
        resource_id: str,
        url: str,
        text: str,
        context: str,
        position: HighlightPosition | Mapping[str, Any],
        color: str | None = None,
        note: str | None = None,
    ) -> Highlight:
        """Always inserts a new highlight; the resource must exist."""
        now = self._clock()
        highlight = Highlight(
            id=new_id("hl"),
            resource_id=resource_id,
            url=url,
            text=text,
            context=context,
            position=HighlightPosition.from_input(position),
            color=color or self.default_color,
            note=note,
            created_at=now,
            updated_at=now,
        )
        async with self.store.transaction() as tx:
            if await tx.get("resources", resource_id) is None:
                raise NotFoundError("Resource", resource_id)
            stored = await tx.insert(COLLECTION, highlight.to_store())
        logger.debug("Created highlight %s on resource %s", highlight.id, resource_id)
        OPERATION_COUNT.labels("highlights", "create").inc()
        return Highlight.model_validate(stored)

    async def get_highlight(self, highlight_id: str) -> Highlight | None:
        row = await self.store.get(COLLECTION, highlight_id)
        return Highlight.model_validate(row) if row else None

    async def get_highlights_by_resource(self, resource_id: str) -> list[Highlight]:
        rows = await self.store.find(COLLECTION, {"resource_id": resource_id})
        return [Highlight.model_validate(row) for row in rows]

    async def get_all_highlights(self) -> list[Highlight]:
        rows = await self.store.find(COLLECTION, descending=True)
        return [Highlight.model_validate(row) for row in rows]

    async def get_highlights_by_color(self, color: str) -> list[Highlight]:
        rows = await self.store.find(COLLECTION, {"color": color})
        return [Highlight.model_validate(row) for row in rows]

    async def update_highlight(
        self,
        highlight_id: str,
        text: str | None = None,
        note: str | None = None,
        color: str | None = None,
    ) -> Highlight | None:
        changes = {
            key: value
            for key, value in (("text", text), ("note", note), ("color", color))
            if value is not None
        }
        row = await self.store.update(COLLECTION, highlight_id, changes)
        return Highlight.model_validate(row) if row else None

    async def delete_highlight(self, highlight_id: str) -> bool:
        """Delete the highlight and its flashcards in one transaction."""
        async with self.store.transaction() as tx:
            result = await delete_highlight_tree(tx, highlight_id)
        return result.highlights > 0

    async def search_highlights(self, query: str) -> list[Highlight]:
        needle = query.lower()
        return [
            highlight
            for highlight in await self.get_all_highlights()
            if needle in highlight.text.lower()
            or (highlight.note and needle in highlight.note.lower())
            or needle in highlight.context.lower()
        ]


__all__ = ["DEFAULT_COLOR", "HighlightService"]
