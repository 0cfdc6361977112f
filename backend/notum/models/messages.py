"""Closed set of messages carried by the message bus and the processing worker.

Each message kind has a fixed payload model; envelopes are validated at the
channel boundary with :func:`parse_message` and :func:`parse_worker_request`.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from notum.core.errors import InvalidInputError
from notum.models.entities import HighlightPosition, Record, ResourceType

# Message bus ----------------------------------------------------------------


class SaveResourceData(Record):
    type: ResourceType = "page"
    url: str
    title: str
    content: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class SaveHighlightData(Record):
    url: str
    title: str
    text: str
    context: str
    position: HighlightPosition
    color: str | None = None
    note: str | None = None


class AddToTrackData(Record):
    resource_id: str
    track_id: str


class ExportDataData(Record):
    track_ids: list[str] | None = None


class ImportDataData(Record):
    export_data: dict[str, Any]


class ReviewFlashcardData(Record):
    flashcard_id: str
    correct: bool


class GetDueFlashcardsData(Record):
    pass


class SaveResourceMessage(BaseModel):
    type: Literal["SAVE_RESOURCE"]
    data: SaveResourceData


class SaveHighlightMessage(BaseModel):
    type: Literal["SAVE_HIGHLIGHT"]
    data: SaveHighlightData


class AddToTrackMessage(BaseModel):
    type: Literal["ADD_TO_TRACK"]
    data: AddToTrackData


class ExportDataMessage(BaseModel):
    type: Literal["EXPORT_DATA"]
    data: ExportDataData = Field(default_factory=ExportDataData)


class ImportDataMessage(BaseModel):
    type: Literal["IMPORT_DATA"]
    data: ImportDataData


class ReviewFlashcardMessage(BaseModel):
    type: Literal["REVIEW_FLASHCARD"]
    data: ReviewFlashcardData


class GetDueFlashcardsMessage(BaseModel):
    type: Literal["GET_DUE_FLASHCARDS"]
    data: GetDueFlashcardsData = Field(default_factory=GetDueFlashcardsData)


BusMessage = Annotated[
    Union[
        SaveResourceMessage,
        SaveHighlightMessage,
        AddToTrackMessage,
        ExportDataMessage,
        ImportDataMessage,
        ReviewFlashcardMessage,
        GetDueFlashcardsMessage,
    ],
    Field(discriminator="type"),
]

_MESSAGE_ADAPTER: TypeAdapter[Any] = TypeAdapter(BusMessage)


def parse_message(envelope: Any) -> Any:
    try:
        return _MESSAGE_ADAPTER.validate_python(envelope)
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid message: {exc.errors(include_url=False)}") from exc


# Processing worker ----------------------------------------------------------


class AnalyzeContentData(BaseModel):
    content: str


class ExtractKeywordsData(BaseModel):
    text: str
    max_keywords: int = Field(default=10, ge=1, alias="maxKeywords")

    model_config = {"populate_by_name": True}


class GenerateSummaryData(BaseModel):
    text: str
    max_length: int = Field(default=200, ge=4, alias="maxLength")

    model_config = {"populate_by_name": True}


class CalculateReadabilityData(BaseModel):
    text: str


class ProcessMarkdownData(BaseModel):
    tracks: list[dict[str, Any]]
    resources: dict[str, dict[str, Any]] = Field(default_factory=dict)


class AnalyzeContentRequest(BaseModel):
    id: str
    type: Literal["ANALYZE_CONTENT"]
    data: AnalyzeContentData


class ExtractKeywordsRequest(BaseModel):
    id: str
    type: Literal["EXTRACT_KEYWORDS"]
    data: ExtractKeywordsData


class GenerateSummaryRequest(BaseModel):
    id: str
    type: Literal["GENERATE_SUMMARY"]
    data: GenerateSummaryData


class CalculateReadabilityRequest(BaseModel):
    id: str
    type: Literal["CALCULATE_READABILITY"]
    data: CalculateReadabilityData


class ProcessMarkdownRequest(BaseModel):
    id: str
    type: Literal["PROCESS_MARKDOWN"]
    data: ProcessMarkdownData


WorkerRequest = Annotated[
    Union[
        AnalyzeContentRequest,
        ExtractKeywordsRequest,
        GenerateSummaryRequest,
        CalculateReadabilityRequest,
        ProcessMarkdownRequest,
    ],
    Field(discriminator="type"),
]


class WorkerResponse(BaseModel):
    id: str
    type: str
    data: Any = None
    error: str | None = None


_WORKER_ADAPTER: TypeAdapter[Any] = TypeAdapter(WorkerRequest)


def parse_worker_request(envelope: Any) -> Any:
    try:
        return _WORKER_ADAPTER.validate_python(envelope)
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid worker request: {exc.errors(include_url=False)}") from exc


__all__ = [
    "BusMessage",
    "WorkerRequest",
    "WorkerResponse",
    "parse_message",
    "parse_worker_request",
]
