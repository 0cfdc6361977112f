"""Portable export bundle."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from pydantic import Field

from notum.core.errors import InvalidInputError
from notum.models.entities import Asset, Flashcard, Highlight, Record, Resource, StudyTrack, Translation, User

BUNDLE_VERSION = "1.0.0"

# bundles written by older exporters call the track list "tracks"
TRACK_KEYS = ("studyTracks", "study_tracks", "tracks")


class ExportBundle(Record):
    version: str = BUNDLE_VERSION
    exported_at: datetime
    user: User | None = None
    resources: list[Resource] = Field(default_factory=list)
    highlights: list[Highlight] = Field(default_factory=list)
    study_tracks: list[StudyTrack] = Field(default_factory=list)
    flashcards: list[Flashcard] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
    translations: list[Translation] = Field(default_factory=list)


@dataclass(slots=True)
class RawBundle:
    """Top-level shape of an incoming bundle; records are validated one by one later."""

    version: str
    resources: list[Any]
    highlights: list[Any]
    study_tracks: list[Any]
    flashcards: list[Any] = field(default_factory=list)


def validate_bundle(data: Any) -> RawBundle:
    if not isinstance(data, Mapping):
        raise InvalidInputError("Import data must be an object")
    version = data.get("version")
    if not isinstance(version, str):
        raise InvalidInputError("Import data is missing a string 'version'")
    lists: dict[str, list[Any]] = {}
    for key in ("resources", "highlights"):
        value = data.get(key)
        if not isinstance(value, list):
            raise InvalidInputError(f"Import data is missing a '{key}' list")
        lists[key] = value
    tracks = next((data[key] for key in TRACK_KEYS if key in data), None)
    if not isinstance(tracks, list):
        raise InvalidInputError("Import data is missing a 'studyTracks' list")
    flashcards = data.get("flashcards") or []
    if not isinstance(flashcards, list):
        raise InvalidInputError("'flashcards' must be a list")
    return RawBundle(
        version=version,
        resources=lists["resources"],
        highlights=lists["highlights"],
        study_tracks=tracks,
        flashcards=flashcards,
    )


__all__ = ["BUNDLE_VERSION", "ExportBundle", "RawBundle", "validate_bundle"]
