"""Flashcard and review routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from notum.api.dependencies import get_flashcard_service
from notum.models.dto import (
    DeleteResponse,
    FlashcardCreateRequest,
    FlashcardFromHighlightRequest,
    FlashcardUpdateRequest,
    ReviewRequest,
)
from notum.services import FlashcardService

router = APIRouter()


@router.get("/flashcards", summary="List flashcards, newest first")
async def list_flashcards(
    resource_id: str | None = Query(default=None, alias="resourceId"),
    service: FlashcardService = Depends(get_flashcard_service),
) -> list[dict[str, Any]]:
    if resource_id:
        cards = await service.get_flashcards_by_resource(resource_id)
    else:
        cards = await service.get_all_flashcards()
    return [card.to_portable() for card in cards]


@router.post("/flashcards", summary="Create a flashcard")
async def create_flashcard(
    request: FlashcardCreateRequest,
    service: FlashcardService = Depends(get_flashcard_service),
) -> dict[str, Any]:
    card = await service.create_flashcard(request.resource_id, request.front, request.back, request.highlight_id)
    return card.to_portable()


@router.post("/flashcards/from-highlight", summary="Generate a flashcard from a highlight")
async def create_flashcard_from_highlight(
    request: FlashcardFromHighlightRequest,
    service: FlashcardService = Depends(get_flashcard_service),
) -> dict[str, Any]:
    card = await service.create_from_highlight(request.highlight_id, request.back)
    return card.to_portable()


@router.get("/flashcards/due", summary="Cards due for review, soonest first")
async def due_flashcards(service: FlashcardService = Depends(get_flashcard_service)) -> list[dict[str, Any]]:
    return [card.to_portable() for card in await service.get_due_flashcards()]


@router.get("/flashcards/{flashcard_id}")
async def get_flashcard(flashcard_id: str, service: FlashcardService = Depends(get_flashcard_service)) -> dict[str, Any]:
    card = await service.get_flashcard(flashcard_id)
    if card is None:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return card.to_portable()


@router.patch("/flashcards/{flashcard_id}")
async def update_flashcard(
    flashcard_id: str,
    request: FlashcardUpdateRequest,
    service: FlashcardService = Depends(get_flashcard_service),
) -> dict[str, Any]:
    card = await service.update_flashcard(flashcard_id, request.front, request.back, request.difficulty)
    return card.to_portable()


@router.delete("/flashcards/{flashcard_id}", response_model=DeleteResponse)
async def delete_flashcard(
    flashcard_id: str,
    service: FlashcardService = Depends(get_flashcard_service),
) -> DeleteResponse:
    if not await service.delete_flashcard(flashcard_id):
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return DeleteResponse(deleted=True)


@router.post("/flashcards/{flashcard_id}/review", summary="Record one answer and reschedule")
async def review_flashcard(
    flashcard_id: str,
    request: ReviewRequest,
    service: FlashcardService = Depends(get_flashcard_service),
) -> dict[str, Any]:
    card = await service.review_flashcard(flashcard_id, request.correct)
    return card.to_portable()


__all__ = ["router"]
