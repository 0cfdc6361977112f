"""Procedural referential integrity.

The store has no foreign keys, so every delete that must take dependent
records with it goes through these helpers, inside the caller's transaction.
"""

from __future__ import annotations

from dataclasses import dataclass

from notum.core.logging import get_logger
from notum.db.store import Transaction

logger = get_logger(__name__)


@dataclass(slots=True)
class CascadeResult:
    resources: int = 0
    highlights: int = 0
    flashcards: int = 0


async def delete_resource_tree(tx: Transaction, resource_id: str) -> CascadeResult:
    """Delete a resource, its highlights, and every flashcard tied to either."""
    result = CascadeResult()
    highlights = await tx.find("highlights", {"resource_id": resource_id})
    for highlight in highlights:
        result.flashcards += await tx.delete_where("flashcards", {"highlight_id": highlight["id"]})
    result.highlights = await tx.delete_where("highlights", {"resource_id": resource_id})
    result.flashcards += await tx.delete_where("flashcards", {"resource_id": resource_id})
    result.resources = await tx.delete_where("resources", {"id": resource_id})
    logger.debug(
        "Deleted resource %s with %s highlights and %s flashcards",
        resource_id,
        result.highlights,
        result.flashcards,
    )
    return result


async def delete_highlight_tree(tx: Transaction, highlight_id: str) -> CascadeResult:
    """Delete a highlight and the flashcards generated from it."""
    result = CascadeResult()
    result.flashcards = await tx.delete_where("flashcards", {"highlight_id": highlight_id})
    result.highlights = await tx.delete_where("highlights", {"id": highlight_id})
    logger.debug("Deleted highlight %s with %s flashcards", highlight_id, result.flashcards)
    return result


__all__ = ["CascadeResult", "delete_highlight_tree", "delete_resource_tree"]
