"""Exponential spaced-repetition schedule for flashcards.

A wrong answer brings the card back after one day and makes it easier
(difficulty -0.5). A right answer schedules it ``2.5 ** reviews * difficulty``
days out, where both factors are taken from before the review, and makes it
slightly harder (+0.1) unless it was the card's first review.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from notum.models.entities import MAX_DIFFICULTY, MIN_DIFFICULTY, Flashcard

INTERVAL_BASE = 2.5
MIN_INTERVAL_DAYS = 1
MAX_INTERVAL_DAYS = 365
CORRECT_STEP = 0.1
INCORRECT_STEP = 0.5


@dataclass(frozen=True, slots=True)
class ReviewOutcome:
    """Fields written back to a card after one review."""

    review_count: int
    correct_count: int
    difficulty: float
    interval_days: int
    next_review: datetime


def round_half_up(value: float, digits: int = 0) -> float:
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def clamp_difficulty(value: float) -> float:
    return min(MAX_DIFFICULTY, max(MIN_DIFFICULTY, value))


def next_interval_days(
    difficulty: float,
    review_count: int,
    correct: bool,
    max_interval_days: int = MAX_INTERVAL_DAYS,
) -> int:
    if not correct:
        return MIN_INTERVAL_DAYS
    base = INTERVAL_BASE**review_count * difficulty
    return int(min(max_interval_days, max(MIN_INTERVAL_DAYS, round_half_up(base))))


def adjust_difficulty(difficulty: float, review_count: int, correct: bool) -> float:
    if correct:
        if review_count == 0:
            return clamp_difficulty(difficulty)
        return clamp_difficulty(round_half_up(difficulty + CORRECT_STEP, 1))
    return clamp_difficulty(round_half_up(difficulty - INCORRECT_STEP, 1))


def schedule_review(
    card: Flashcard,
    correct: bool,
    now: datetime,
    max_interval_days: int = MAX_INTERVAL_DAYS,
) -> ReviewOutcome:
    interval = next_interval_days(card.difficulty, card.review_count, correct, max_interval_days)
    return ReviewOutcome(
        review_count=card.review_count + 1,
        correct_count=card.correct_count + (1 if correct else 0),
        difficulty=adjust_difficulty(card.difficulty, card.review_count, correct),
        interval_days=interval,
        next_review=now + timedelta(days=interval),
    )


__all__ = [
    "ReviewOutcome",
    "adjust_difficulty",
    "clamp_difficulty",
    "next_interval_days",
    "round_half_up",
    "schedule_review",
]
