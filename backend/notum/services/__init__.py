"""Services over the entity store."""

from .resources import ResourceService
from .highlights import HighlightService
from .tracks import StudyTrackService
from .flashcards import FlashcardService
from .export_import import ExportImportService, ImportReport

__all__ = [
    "ResourceService",
    "HighlightService",
    "StudyTrackService",
    "FlashcardService",
    "ExportImportService",
    "ImportReport",
]
