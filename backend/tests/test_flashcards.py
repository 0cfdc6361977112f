"""Tests for flashcards and the review schedule."""

from __future__ import annotations

from datetime import timedelta

import pytest

from notum.core.errors import InvalidInputError, NotFoundError
from notum.services.scheduler import adjust_difficulty, next_interval_days, round_half_up


def test_round_half_up_matches_rounding_of_halves() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(7.5) == 8
    assert round_half_up(3.1 - 0.5, 1) == 2.6
    assert round_half_up(2.44) == 2


@pytest.mark.parametrize(
    ("difficulty", "reviews", "correct", "expected"),
    [
        (3, 0, True, 3),
        (3, 1, True, 8),
        (3, 2, True, 19),
        (3, 5, False, 1),
        (5, 10, True, 365),
        (1, 0, True, 1),
    ],
)
def test_next_interval_days(difficulty: float, reviews: int, correct: bool, expected: int) -> None:
    assert next_interval_days(difficulty, reviews, correct) == expected


def test_adjust_difficulty() -> None:
    assert adjust_difficulty(3, 0, True) == 3
    assert adjust_difficulty(3, 1, True) == 3.1
    assert adjust_difficulty(3, 0, False) == 2.5
    assert adjust_difficulty(1.2, 4, False) == 1
    assert adjust_difficulty(5, 4, True) == 5


async def test_create_flashcard_is_due_immediately(services, clock) -> None:
    card = await services.flashcards.create_flashcard("r1", "Front", "Back")
    assert card.difficulty == 3
    assert card.next_review == clock()
    assert card.is_due(clock())
    assert (card.review_count, card.correct_count) == (0, 0)
    assert [c.id for c in await services.flashcards.get_due_flashcards()] == [card.id]


async def test_incorrect_review_eases_card_and_returns_tomorrow(services, clock) -> None:
    card = await services.flashcards.create_flashcard("r1", "Front", "Back")
    reviewed = await services.flashcards.review_flashcard(card.id, correct=False)
    assert reviewed.difficulty == 2.5
    assert reviewed.next_review == clock() + timedelta(days=1)
    assert not reviewed.is_due(clock())
    assert (reviewed.review_count, reviewed.correct_count) == (1, 0)


async def test_correct_reviews_grow_interval(services, clock) -> None:
    card = await services.flashcards.create_flashcard("r1", "Front", "Back")
    first = await services.flashcards.review_flashcard(card.id, correct=True)
    assert first.difficulty == 3
    assert first.next_review == clock() + timedelta(days=3)

    clock.advance(days=3)
    second = await services.flashcards.review_flashcard(card.id, correct=True)
    assert second.difficulty == 3.1
    assert second.next_review == clock() + timedelta(days=8)
    assert (second.review_count, second.correct_count) == (2, 2)


async def test_due_cards_ordered_soonest_first(services, clock) -> None:
    later = await services.flashcards.create_flashcard("r1", "Later", "b")
    soon = await services.flashcards.create_flashcard("r1", "Soon", "b")
    await services.flashcards.review_flashcard(later.id, correct=True)
    await services.flashcards.review_flashcard(soon.id, correct=False)
    assert await services.flashcards.get_due_flashcards() == []

    clock.advance(days=1)
    assert [c.id for c in await services.flashcards.get_due_flashcards()] == [soon.id]
    clock.advance(days=2)
    assert [c.id for c in await services.flashcards.get_due_flashcards()] == [soon.id, later.id]


async def test_review_missing_card(services) -> None:
    with pytest.raises(NotFoundError):
        await services.flashcards.review_flashcard("missing", correct=True)


async def test_update_flashcard(services) -> None:
    card = await services.flashcards.create_flashcard("r1", "Front", "Back")
    updated = await services.flashcards.update_flashcard(card.id, back="New back", difficulty=4)
    assert (updated.front, updated.back, updated.difficulty) == ("Front", "New back", 4)
    with pytest.raises(InvalidInputError):
        await services.flashcards.update_flashcard(card.id, difficulty=6)
    with pytest.raises(NotFoundError):
        await services.flashcards.update_flashcard("missing", front="x")


async def test_listing_and_delete(services, clock) -> None:
    first = await services.flashcards.create_flashcard("r1", "One", "b")
    clock.advance(seconds=1)
    second = await services.flashcards.create_flashcard("r1", "Two", "b")
    other = await services.flashcards.create_flashcard("r2", "Three", "b")
    assert [c.id for c in await services.flashcards.get_flashcards_by_resource("r1")] == [first.id, second.id]
    assert [c.id for c in await services.flashcards.get_all_flashcards()] == [other.id, second.id, first.id]
    assert await services.flashcards.delete_flashcard(first.id) is True
    assert await services.flashcards.delete_flashcard(first.id) is False


async def test_create_from_highlight(services, position) -> None:
    resource = await services.resources.create_resource("page", "https://a.example", "A")
    noted = await services.highlights.create_highlight(
        resource.id, resource.url, "Term", "surrounding text", position, note="Definition"
    )
    bare = await services.highlights.create_highlight(resource.id, resource.url, "Other", "context only", position)

    card = await services.flashcards.create_from_highlight(noted.id)
    assert (card.front, card.back) == ("Term", "Definition")
    assert card.resource_id == resource.id
    assert card.highlight_id == noted.id
    assert (await services.flashcards.create_from_highlight(bare.id)).back == "context only"
    assert (await services.flashcards.create_from_highlight(bare.id, back="custom")).back == "custom"
    with pytest.raises(NotFoundError):
        await services.flashcards.create_from_highlight("missing")


async def test_difficulty_stays_in_range_over_review_sequences(services, clock) -> None:
    card = await services.flashcards.create_flashcard("r1", "Front", "Back")
    outcomes = [False] * 6 + [True] * 45 + [False, True] * 5 + [True] * 20

    seen = []
    for correct in outcomes:
        card = await services.flashcards.review_flashcard(card.id, correct=correct)
        assert 1 <= card.difficulty <= 5
        assert card.next_review > clock()
        seen.append(card.difficulty)
        clock.advance(days=1)

    assert min(seen) == 1
    assert max(seen) == 5
    assert card.review_count == len(outcomes)
    assert card.correct_count == outcomes.count(True)
    stored = await services.flashcards.get_flashcard(card.id)
    assert stored.difficulty == card.difficulty
