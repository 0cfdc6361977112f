"""Request bodies accepted by the HTTP API.

Every body takes camelCase or snake_case keys; responses are the records'
camelCase portable form.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from notum.models.entities import HighlightPosition, Record, ResourceType, TrackDifficulty


class ResourceCreateRequest(Record):
    type: ResourceType = "page"
    url: str
    title: str
    content: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ProgressUpdateRequest(Record):
    time_spent: float | None = None
    last_visited: datetime | None = None
    completion_percentage: float | None = Field(default=None, ge=0, le=100)
    review_count: int | None = None


class HighlightCreateRequest(Record):
    resource_id: str
    url: str
    text: str
    context: str = ""
    position: HighlightPosition
    color: str | None = None
    note: str | None = None


class HighlightUpdateRequest(Record):
    text: str | None = None
    note: str | None = None
    color: str | None = None


class TrackCreateRequest(Record):
    name: str
    description: str = ""
    objective: str = ""
    prerequisites: list[str] = Field(default_factory=list)
    is_template: bool = False
    difficulty: TrackDifficulty = "beginner"


class TrackResourceRequest(Record):
    resource_id: str


class MilestoneCreateRequest(Record):
    name: str
    description: str = ""
    required_resources: list[str] = Field(default_factory=list)


class TrackProgressRequest(Record):
    completed_resources: list[str] | None = None
    completed_lessons: int | None = None
    total_time_spent: float | None = None


class DuplicateTemplateRequest(Record):
    name: str


class FlashcardCreateRequest(Record):
    resource_id: str
    front: str
    back: str
    highlight_id: str | None = None


class FlashcardFromHighlightRequest(Record):
    highlight_id: str
    back: str | None = None


class FlashcardUpdateRequest(Record):
    front: str | None = None
    back: str | None = None
    difficulty: float | None = None


class ReviewRequest(Record):
    correct: bool


class ExportRequest(Record):
    track_ids: list[str] | None = None
    format: Literal["json", "zip"] = "json"


class MessageEnvelope(Record):
    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class DeleteResponse(Record):
    deleted: bool


__all__ = [
    "DeleteResponse",
    "DuplicateTemplateRequest",
    "ExportRequest",
    "FlashcardCreateRequest",
    "FlashcardFromHighlightRequest",
    "FlashcardUpdateRequest",
    "HighlightCreateRequest",
    "HighlightUpdateRequest",
    "MessageEnvelope",
    "MilestoneCreateRequest",
    "ProgressUpdateRequest",
    "ReviewRequest",
    "ResourceCreateRequest",
    "TrackCreateRequest",
    "TrackProgressRequest",
    "TrackResourceRequest",
]
