"""Captured content: creation with fingerprint dedup, progress, cascade delete."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic.alias_generators import to_snake

from notum.core.errors import ConstraintViolationError
from notum.core.logging import get_logger
from notum.core.metrics import OPERATION_COUNT
from notum.db.store import EntityStore
from notum.models.entities import Resource, ResourceMetadata, ResourceType, StudyProgress
from notum.services.cascade import CascadeResult, delete_resource_tree
from notum.utils.hashing import content_fingerprint
from notum.utils.ids import new_id
from notum.utils.text import extract_domain, word_count
from notum.utils.time import Clock, utc_now

logger = get_logger(__name__)

COLLECTION = "resources"


def snake_keys(values: Mapping[str, Any] | None) -> dict[str, Any]:
    """Accept camelCase or snake_case keys, dropping ``None`` values."""
    return {to_snake(key): value for key, value in (values or {}).items() if value is not None}


def resource_fingerprint(url: str, title: str, content: str | None = None) -> str:
    return content_fingerprint(content or f"{title}{url}")


class ResourceService:
    """Create, query and delete captured resources."""

    def __init__(self, store: EntityStore, clock: Clock = utc_now) -> None:
        self.store = store
        self._clock = clock

    async def create_resource(
        self,
        type: ResourceType,
        url: str,
        title: str,
        content: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> Resource:
        """Insert a resource, or return the existing one with the same fingerprint."""
        fingerprint = resource_fingerprint(url, title, content)
        existing = await self.store.first(COLLECTION, {"content_hash": fingerprint})
        if existing is not None:
            logger.debug("Resource with fingerprint %s already captured", fingerprint)
            return Resource.model_validate(existing)

        now = self._clock()
        fields = {"domain": extract_domain(url), "word_count": word_count(content), **snake_keys(metadata)}
        resource = Resource(
            id=new_id("res"),
            type=type,
            url=url,
            title=title,
            content=content,
            metadata=ResourceMetadata.from_input(fields),
            content_hash=fingerprint,
            created_at=now,
            updated_at=now,
            study_progress=StudyProgress(last_visited=now),
        )
        try:
            stored = await self.store.insert(COLLECTION, resource.to_store())
        except ConstraintViolationError:
            # a concurrent capture may have inserted the same fingerprint first
            existing = await self.store.first(COLLECTION, {"content_hash": fingerprint})
            if existing is None:
                raise
            logger.debug("Lost insert race for fingerprint %s", fingerprint)
            return Resource.model_validate(existing)
        OPERATION_COUNT.labels("resources", "create").inc()
        return Resource.model_validate(stored)

    async def get_resource(self, resource_id: str) -> Resource | None:
        row = await self.store.get(COLLECTION, resource_id)
        return Resource.model_validate(row) if row else None

    async def get_resource_by_url(self, url: str) -> Resource | None:
        row = await self.store.first(COLLECTION, {"url": url})
        return Resource.model_validate(row) if row else None

    async def get_resource_by_fingerprint(self, fingerprint: str) -> Resource | None:
        row = await self.store.first(COLLECTION, {"content_hash": fingerprint})
        return Resource.model_validate(row) if row else None

    async def get_all_resources(self) -> list[Resource]:
        rows = await self.store.find(COLLECTION, descending=True)
        return [Resource.model_validate(row) for row in rows]

    async def get_resources_by_type(self, type: ResourceType) -> list[Resource]:
        rows = await self.store.find(COLLECTION, {"type": type}, descending=True)
        return [Resource.model_validate(row) for row in rows]

    async def search_resources(self, query: str) -> list[Resource]:
        """Case-insensitive substring match over title, content and url."""
        needle = query.lower()
        return [
            resource
            for resource in await self.get_all_resources()
            if needle in resource.title.lower()
            or (resource.content and needle in resource.content.lower())
            or needle in resource.url.lower()
        ]

    async def update_progress(self, resource_id: str, progress: Mapping[str, Any]) -> Resource | None:
        """Merge fields into ``study_progress``; ``last_visited`` defaults to now."""
        changes = snake_keys(progress)
        changes.setdefault("last_visited", self._clock())
        async with self.store.transaction() as tx:
            row = await tx.get(COLLECTION, resource_id)
            if row is None:
                return None
            current = Resource.model_validate(row).study_progress
            merged = StudyProgress.from_input({**current.to_store(), **changes})
            updated = await tx.update(COLLECTION, resource_id, {"study_progress": merged.to_store()})
        return Resource.model_validate(updated)

    async def delete_resource(self, resource_id: str) -> bool:
        """Delete the resource and every highlight and flashcard it owns, atomically."""
        async with self.store.transaction() as tx:
            result: CascadeResult = await delete_resource_tree(tx, resource_id)
        if result.resources:
            OPERATION_COUNT.labels("resources", "delete").inc()
        return result.resources > 0


__all__ = ["ResourceService", "resource_fingerprint", "snake_keys"]
