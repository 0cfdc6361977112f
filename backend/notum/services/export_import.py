"""Portable bundles: export to JSON or a ZIP archive, best-effort import back."""

from __future__ import annotations

import io
import zipfile
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Iterable, Literal, Mapping, Sequence

import orjson

from notum.core.errors import InvalidInputError
from notum.core.logging import get_logger
from notum.core.metrics import IMPORT_RECORDS
from notum.messaging import processing
from notum.messaging.worker import WorkerBridge
from notum.models.bundle import BUNDLE_VERSION, ExportBundle, validate_bundle
from notum.models.entities import Flashcard, Highlight, Resource, StudyTrack, User
from notum.services.flashcards import FlashcardService
from notum.services.highlights import HighlightService
from notum.services.resources import ResourceService, resource_fingerprint
from notum.services.tracks import StudyTrackService
from notum.utils.text import safe_filename
from notum.utils.time import Clock, utc_now

logger = get_logger(__name__)

BUNDLE_MEMBER = "bundle.json"
LOCAL_USER_ID = "local-user"

ImportKind = Literal["resources", "highlights", "flashcards", "tracks"]
ImportStatus = Literal["imported", "reused", "skipped", "failed"]


@dataclass(slots=True)
class ImportCounts:
    imported: int = 0
    reused: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass(slots=True)
class ImportReport:
    """Per-kind outcome of one bundle import."""

    resources: ImportCounts = field(default_factory=ImportCounts)
    highlights: ImportCounts = field(default_factory=ImportCounts)
    flashcards: ImportCounts = field(default_factory=ImportCounts)
    tracks: ImportCounts = field(default_factory=ImportCounts)

    def record(self, kind: ImportKind, status: ImportStatus) -> None:
        counts = getattr(self, kind)
        setattr(counts, status, getattr(counts, status) + 1)
        IMPORT_RECORDS.labels(kind, status).inc()

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {
            "resources": asdict(self.resources),
            "highlights": asdict(self.highlights),
            "flashcards": asdict(self.flashcards),
            "tracks": asdict(self.tracks),
        }


class ExportImportService:
    def __init__(
        self,
        resources: ResourceService,
        highlights: HighlightService,
        tracks: StudyTrackService,
        flashcards: FlashcardService,
        worker: WorkerBridge | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.resources = resources
        self.highlights = highlights
        self.tracks = tracks
        self.flashcards = flashcards
        self.worker = worker
        self._clock = clock

    # Export -----------------------------------------------------------------

    async def export_bundle(self, track_ids: Sequence[str] | None = None) -> ExportBundle:
        """Selected (or all) tracks with the resources they reference and what those own."""
        tracks = await self._select_tracks(track_ids)
        resource_ids = list(dict.fromkeys(rid for track in tracks for rid in track.resources))
        resources: list[Resource] = []
        highlights: list[Highlight] = []
        flashcards: list[Flashcard] = []
        for resource_id in resource_ids:
            resource = await self.resources.get_resource(resource_id)
            if resource is None:
                continue
            resources.append(resource)
            highlights.extend(await self.highlights.get_highlights_by_resource(resource_id))
            flashcards.extend(await self.flashcards.get_flashcards_by_resource(resource_id))
        now = self._clock()
        return ExportBundle(
            exported_at=now,
            user=User(id=LOCAL_USER_ID, name="Local User", created_at=now, updated_at=now),
            resources=resources,
            highlights=highlights,
            study_tracks=tracks,
            flashcards=flashcards,
        )

    async def export_json(self, track_ids: Sequence[str] | None = None) -> bytes:
        bundle = await self.export_bundle(track_ids)
        return orjson.dumps(bundle.to_portable(), option=orjson.OPT_INDENT_2)

    async def export_archive(self, track_ids: Sequence[str] | None = None) -> bytes:
        """ZIP with one markdown document per track, aggregate documents and the bundle itself."""
        bundle = await self.export_bundle(track_ids)
        portable = bundle.to_portable()
        track_files = await self._render_tracks(portable["studyTracks"], portable["resources"])

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for filename, content in track_files.items():
                archive.writestr(filename, content)
            if bundle.resources:
                archive.writestr("Resources.md", _resources_markdown(bundle.resources))
            if bundle.highlights:
                archive.writestr("Highlights.md", _highlights_markdown(bundle.highlights))
            metadata = {
                "exportedAt": portable["exportedAt"],
                "version": BUNDLE_VERSION,
                "trackCount": len(bundle.study_tracks),
                "resourceCount": len(bundle.resources),
                "highlightCount": len(bundle.highlights),
                "flashcardCount": len(bundle.flashcards),
            }
            archive.writestr("metadata.json", orjson.dumps(metadata, option=orjson.OPT_INDENT_2))
            archive.writestr(BUNDLE_MEMBER, orjson.dumps(portable, option=orjson.OPT_INDENT_2))
        logger.info(
            "Exported %s tracks, %s resources and %s highlights",
            len(bundle.study_tracks),
            len(bundle.resources),
            len(bundle.highlights),
        )
        return buffer.getvalue()

    async def export_filename(
        self,
        fmt: Literal["json", "zip"],
        track_ids: Sequence[str] | None = None,
    ) -> str:
        today = self._clock().date().isoformat()
        if fmt == "json":
            return f"notum_data_{today}.json"
        if track_ids and len(track_ids) == 1:
            track = await self.tracks.get_track(track_ids[0])
            if track is not None:
                return f"{safe_filename(track.name)}_export.zip"
        return f"notum_export_{today}.zip"

    # Import -----------------------------------------------------------------

    async def import_file(self, path: Path) -> ImportReport:
        suffix = path.suffix.lower()
        if suffix == ".json":
            return await self.import_json(path.read_text(encoding="utf-8"))
        if suffix == ".zip":
            return await self.import_archive(path.read_bytes())
        raise InvalidInputError(f"Unsupported file type {suffix or path.name!r}; use JSON or ZIP files")

    async def import_json(self, text: str | bytes) -> ImportReport:
        try:
            data = orjson.loads(text)
        except orjson.JSONDecodeError as exc:
            raise InvalidInputError(f"Import data is not valid JSON: {exc}") from exc
        return await self.import_bundle(data)

    async def import_archive(self, data: bytes) -> ImportReport:
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                if BUNDLE_MEMBER not in archive.namelist():
                    raise InvalidInputError(f"Archive has no {BUNDLE_MEMBER}")
                payload = archive.read(BUNDLE_MEMBER)
        except zipfile.BadZipFile as exc:
            raise InvalidInputError(f"Not a ZIP archive: {exc}") from exc
        return await self.import_json(payload)

    async def import_bundle(self, data: Any) -> ImportReport:
        """Import a bundle record by record; a failing record is logged and skipped."""
        raw = validate_bundle(data)
        report = ImportReport()
        resource_ids = await self._import_resources(raw.resources, report)
        highlight_ids = await self._import_highlights(raw.highlights, resource_ids, report)
        await self._import_flashcards(raw.flashcards, resource_ids, highlight_ids, report)
        await self._import_tracks(raw.study_tracks, resource_ids, report)
        logger.info("Import finished", extra={"ctx_report": report.to_dict()})
        return report

    async def _import_resources(self, records: Iterable[Any], report: ImportReport) -> dict[str, str]:
        id_map: dict[str, str] = {}
        for record in records:
            try:
                resource = Resource.model_validate(record)
                fingerprint = resource_fingerprint(resource.url, resource.title, resource.content)
                existing = await self.resources.get_resource_by_url(resource.url)
                if existing is None:
                    existing = await self.resources.get_resource_by_fingerprint(fingerprint)
                if existing is not None:
                    id_map[resource.id] = existing.id
                    report.record("resources", "reused")
                    continue
                created = await self.resources.create_resource(
                    resource.type,
                    resource.url,
                    resource.title,
                    resource.content,
                    resource.metadata.to_store(),
                )
                id_map[resource.id] = created.id
                report.record("resources", "imported")
            except Exception as exc:
                logger.warning("Failed to import resource: %s", exc, exc_info=True)
                report.record("resources", "failed")
        return id_map

    async def _import_highlights(
        self,
        records: Iterable[Any],
        resource_ids: Mapping[str, str],
        report: ImportReport,
    ) -> dict[str, str]:
        id_map: dict[str, str] = {}
        for record in records:
            try:
                highlight = Highlight.model_validate(record)
                resource_id = resource_ids.get(highlight.resource_id)
                if resource_id is None:
                    report.record("highlights", "skipped")
                    continue
                created = await self.highlights.create_highlight(
                    resource_id,
                    highlight.url,
                    highlight.text,
                    highlight.context,
                    highlight.position,
                    highlight.color,
                    highlight.note,
                )
                id_map[highlight.id] = created.id
                report.record("highlights", "imported")
            except Exception as exc:
                logger.warning("Failed to import highlight: %s", exc, exc_info=True)
                report.record("highlights", "failed")
        return id_map

    async def _import_flashcards(
        self,
        records: Iterable[Any],
        resource_ids: Mapping[str, str],
        highlight_ids: Mapping[str, str],
        report: ImportReport,
    ) -> None:
        for record in records:
            try:
                card = Flashcard.model_validate(record)
                resource_id = resource_ids.get(card.resource_id)
                if resource_id is None:
                    report.record("flashcards", "skipped")
                    continue
                highlight_id = highlight_ids.get(card.highlight_id) if card.highlight_id else None
                await self.flashcards.create_flashcard(resource_id, card.front, card.back, highlight_id=highlight_id)
                report.record("flashcards", "imported")
            except Exception as exc:
                logger.warning("Failed to import flashcard: %s", exc, exc_info=True)
                report.record("flashcards", "failed")

    async def _import_tracks(
        self,
        records: Iterable[Any],
        resource_ids: Mapping[str, str],
        report: ImportReport,
    ) -> None:
        for record in records:
            try:
                track = StudyTrack.model_validate(record)
                if track.is_template:
                    report.record("tracks", "skipped")
                    continue
                created = await self.tracks.create_track(
                    track.name,
                    track.description,
                    track.objective,
                    track.prerequisites,
                    difficulty=track.difficulty,
                )
                for resource_id in track.resources:
                    if resource_id in resource_ids:
                        await self.tracks.add_resource_to_track(created.id, resource_ids[resource_id])
                for milestone in sorted(track.milestones, key=lambda m: m.order):
                    await self.tracks.add_milestone(
                        created.id,
                        milestone.name,
                        milestone.description,
                        [resource_ids[rid] for rid in milestone.required_resources if rid in resource_ids],
                    )
                report.record("tracks", "imported")
            except Exception as exc:
                logger.warning("Failed to import study track: %s", exc, exc_info=True)
                report.record("tracks", "failed")

    # Helpers ----------------------------------------------------------------

    async def _select_tracks(self, track_ids: Sequence[str] | None) -> list[StudyTrack]:
        if track_ids is None:
            return await self.tracks.get_all_tracks()
        selected = [await self.tracks.get_track(track_id) for track_id in track_ids]
        return [track for track in selected if track is not None]

    async def _render_tracks(
        self,
        tracks: list[dict[str, Any]],
        resources: list[dict[str, Any]],
    ) -> dict[str, str]:
        by_id = {resource["id"]: resource for resource in resources}
        if self.worker is not None and self.worker.is_running:
            return await self.worker.send_message("PROCESS_MARKDOWN", {"tracks": tracks, "resources": by_id})
        return processing.render_tracks_markdown(tracks, by_id)


def _resources_markdown(resources: Iterable[Resource]) -> str:
    parts = ["# Resources\n\n"]
    for resource in resources:
        parts.append(f"## {resource.title}\n\n**URL:** {resource.url}\n\n**Type:** {resource.type}\n\n")
        if resource.content:
            parts.append(f"**Content:**\n\n{resource.content}\n\n")
        parts.append("---\n\n")
    return "".join(parts)


def _highlights_markdown(highlights: Iterable[Highlight]) -> str:
    parts = ["# Highlights\n\n"]
    for highlight in highlights:
        parts.append(f"## {highlight.text[:50]}...\n\n> {highlight.text}\n\n")
        if highlight.note:
            parts.append(f"**Note:** {highlight.note}\n\n")
        parts.append(f"**Context:** {highlight.context}\n\n---\n\n")
    return "".join(parts)


__all__ = ["ExportImportService", "ImportCounts", "ImportReport"]
