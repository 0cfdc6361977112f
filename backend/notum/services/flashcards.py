"""Flashcards and their review loop."""

from __future__ import annotations

from datetime import datetime

from notum.core.errors import InvalidInputError, NotFoundError
from notum.core.logging import get_logger
from notum.core.metrics import FLASHCARD_REVIEWS, OPERATION_COUNT
from notum.db.store import EntityStore
from notum.models.entities import MAX_DIFFICULTY, MIN_DIFFICULTY, Flashcard, Highlight
from notum.services.scheduler import MAX_INTERVAL_DAYS, schedule_review
from notum.utils.ids import new_id
from notum.utils.time import Clock, utc_now

logger = get_logger(__name__)

COLLECTION = "flashcards"
INITIAL_DIFFICULTY = 3


class FlashcardService:
    def __init__(
        self,
        store: EntityStore,
        clock: Clock = utc_now,
        initial_difficulty: int = INITIAL_DIFFICULTY,
        max_interval_days: int = MAX_INTERVAL_DAYS,
    ) -> None:
        self.store = store
        self._clock = clock
        self.initial_difficulty = initial_difficulty
        self.max_interval_days = max_interval_days

    async def create_flashcard(
        self,
        resource_id: str,
        front: str,
        back: str,
        highlight_id: str | None = None,
    ) -> Flashcard:
        """New card, due immediately."""
        now = self._clock()
        card = Flashcard(
            id=new_id("fc"),
            resource_id=resource_id,
            highlight_id=highlight_id,
            front=front,
            back=back,
            difficulty=self.initial_difficulty,
            next_review=now,
            created_at=now,
            updated_at=now,
        )
        stored = await self.store.insert(COLLECTION, card.to_store())
        OPERATION_COUNT.labels("flashcards", "create").inc()
        return Flashcard.model_validate(stored)

    async def create_from_highlight(self, highlight_id: str, back: str | None = None) -> Flashcard:
        """Turn a highlight into a card: its text on the front, note or context on the back."""
        row = await self.store.get("highlights", highlight_id)
        if row is None:
            raise NotFoundError("Highlight", highlight_id)
        highlight = Highlight.model_validate(row)
        return await self.create_flashcard(
            highlight.resource_id,
            highlight.text,
            back or highlight.note or highlight.context,
            highlight_id=highlight.id,
        )

    async def get_flashcard(self, flashcard_id: str) -> Flashcard | None:
        row = await self.store.get(COLLECTION, flashcard_id)
        return Flashcard.model_validate(row) if row else None

    async def get_flashcards_by_resource(self, resource_id: str) -> list[Flashcard]:
        rows = await self.store.find(COLLECTION, {"resource_id": resource_id})
        return [Flashcard.model_validate(row) for row in rows]

    async def get_due_flashcards(self, now: datetime | None = None) -> list[Flashcard]:
        """Cards with ``next_review <= now``, soonest due first."""
        rows = await self.store.find(
            COLLECTION,
            at_most={"next_review": now or self._clock()},
            order_by="next_review",
        )
        return [Flashcard.model_validate(row) for row in rows]

    async def get_all_flashcards(self) -> list[Flashcard]:
        rows = await self.store.find(COLLECTION, descending=True)
        return [Flashcard.model_validate(row) for row in rows]

    async def update_flashcard(
        self,
        flashcard_id: str,
        front: str | None = None,
        back: str | None = None,
        difficulty: float | None = None,
    ) -> Flashcard:
        if difficulty is not None and not MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY:
            raise InvalidInputError(f"difficulty must be between 1 and 5, got {difficulty}")
        changes = {
            key: value
            for key, value in (("front", front), ("back", back), ("difficulty", difficulty))
            if value is not None
        }
        row = await self.store.update(COLLECTION, flashcard_id, changes)
        if row is None:
            raise NotFoundError("Flashcard", flashcard_id)
        return Flashcard.model_validate(row)

    async def delete_flashcard(self, flashcard_id: str) -> bool:
        return await self.store.delete(COLLECTION, flashcard_id)

    async def review_flashcard(self, flashcard_id: str, correct: bool) -> Flashcard:
        """Record one answer and reschedule the card."""
        async with self.store.transaction() as tx:
            row = await tx.get(COLLECTION, flashcard_id)
            if row is None:
                raise NotFoundError("Flashcard", flashcard_id)
            card = Flashcard.model_validate(row)
            outcome = schedule_review(card, correct, self._clock(), self.max_interval_days)
            updated = await tx.update(
                COLLECTION,
                flashcard_id,
                {
                    "review_count": outcome.review_count,
                    "correct_count": outcome.correct_count,
                    "difficulty": outcome.difficulty,
                    "next_review": outcome.next_review,
                },
            )
        FLASHCARD_REVIEWS.labels("correct" if correct else "incorrect").inc()
        logger.debug(
            "Reviewed flashcard %s, next review in %s days",
            flashcard_id,
            outcome.interval_days,
        )
        return Flashcard.model_validate(updated)


__all__ = ["FlashcardService", "INITIAL_DIFFICULTY"]
