"""Persisted records.

Records serialize with snake_case keys inside the store and camelCase keys in
export bundles and HTTP payloads; both spellings validate.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from notum.core.errors import InvalidInputError

ResourceType = Literal["page", "video", "pdf"]
TrackDifficulty = Literal["beginner", "intermediate", "advanced"]

MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 5.0

RecordT = TypeVar("RecordT", bound="Record")


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @classmethod
    def from_input(cls: type[RecordT], data: Any) -> RecordT:
        """Validate caller-supplied data, reporting failures as ``InvalidInputError``."""
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc']) or 'value'}: {error['msg']}" for error in exc.errors()
            )
            raise InvalidInputError(f"Invalid {cls.__name__}: {problems}") from exc

    def to_store(self) -> dict[str, Any]:
        """Body handed to the entity store."""
        return self.model_dump(mode="python")

    def to_portable(self) -> dict[str, Any]:
        """JSON-ready camelCase form used by bundles and the message bus."""
        return self.model_dump(mode="json", by_alias=True)


class UserPreferences(Record):
    theme: Literal["light", "dark", "auto"] = "light"
    language: str = "en"
    auto_translate: bool = False
    study_reminders: bool = True
    export_format: Literal["markdown", "json"] = "markdown"


class User(Record):
    id: str
    name: str
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ResourceMetadata(Record):
    domain: str
    author: str | None = None
    published_at: datetime | None = None
    duration: float | None = None
    word_count: int | None = None
    language: str | None = None


class StudyProgress(Record):
    time_spent: float = 0
    last_visited: datetime
    completion_percentage: float = Field(default=0, ge=0, le=100)
    review_count: int = 0


class Resource(Record):
    id: str
    type: ResourceType
    url: str
    title: str
    content: str | None = None
    metadata: ResourceMetadata
    content_hash: str
    created_at: datetime
    updated_at: datetime
    study_progress: StudyProgress


class HighlightPosition(Record):
    start_offset: int
    end_offset: int
    selector: str


class Highlight(Record):
    id: str
    resource_id: str
    url: str
    text: str
    context: str
    position: HighlightPosition
    color: str = "#ffff00"
    note: str | None = None
    created_at: datetime
    updated_at: datetime


class Milestone(Record):
    id: str
    name: str
    description: str = ""
    required_resources: list[str] = Field(default_factory=list)
    order: int
    completed: bool = False
    completed_at: datetime | None = None


class TrackProgress(Record):
    current_milestone: int = 0
    completed_resources: list[str] = Field(default_factory=list)
    completed_lessons: int = 0
    total_time_spent: float = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None


class StudyTrack(Record):
    id: str
    name: str
    title: str
    description: str = ""
    objective: str = ""
    prerequisites: list[str] = Field(default_factory=list)
    resources: list[str] = Field(default_factory=list)
    lessons: list[str] = Field(default_factory=list)
    difficulty: TrackDifficulty = "beginner"
    milestones: list[Milestone] = Field(default_factory=list)
    is_template: bool = False
    created_at: datetime
    updated_at: datetime
    progress: TrackProgress = Field(default_factory=TrackProgress)

    @property
    def is_completed(self) -> bool:
        return bool(self.milestones) and all(milestone.completed for milestone in self.milestones)


class Flashcard(Record):
    id: str
    resource_id: str
    highlight_id: str | None = None
    front: str
    back: str
    difficulty: float = Field(default=3, ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)
    next_review: datetime
    review_count: int = 0
    correct_count: int = 0
    created_at: datetime
    updated_at: datetime

    def is_due(self, now: datetime) -> bool:
        return self.next_review <= now


class Asset(Record):
    id: str
    type: Literal["image", "audio", "video", "document"]
    url: str
    local_path: str | None = None
    content_type: str
    size: int
    hash: str
    created_at: datetime | None = None


class Translation(Record):
    id: str
    original_text: str
    translated_text: str
    source_language: str
    target_language: str
    content_hash: str
    created_at: datetime | None = None


__all__ = [
    "Asset",
    "Flashcard",
    "Highlight",
    "HighlightPosition",
    "MAX_DIFFICULTY",
    "MIN_DIFFICULTY",
    "Milestone",
    "Record",
    "Resource",
    "ResourceMetadata",
    "ResourceType",
    "StudyProgress",
    "StudyTrack",
    "TrackDifficulty",
    "TrackProgress",
    "Translation",
    "User",
    "UserPreferences",
]
