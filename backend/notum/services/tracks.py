"""Study tracks: ordered milestones, resource membership and progress."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from notum.core.errors import NotATemplateError, NotFoundError
from notum.core.logging import get_logger
from notum.core.metrics import OPERATION_COUNT
from notum.db.store import EntityStore, Transaction
from notum.models.entities import Milestone, StudyTrack, TrackDifficulty, TrackProgress
from notum.services.resources import snake_keys
from notum.utils.ids import new_id
from notum.utils.time import Clock, utc_now

logger = get_logger(__name__)

COLLECTION = "study_tracks"

DEFAULT_TEMPLATES: tuple[dict[str, Any], ...] = (
    {
        "name": "Web Development Fundamentals",
        "description": "Learn the basics of web development including HTML, CSS, and JavaScript",
        "objective": "Build solid foundation in web development technologies",
        "prerequisites": ["Basic computer literacy"],
    },
    {
        "name": "Research Paper Study",
        "description": "Template for studying research papers and academic articles",
        "objective": "Understand and analyze academic research effectively",
        "prerequisites": [],
    },
    {
        "name": "Language Learning",
        "description": "Organize resources for learning a new language",
        "objective": "Achieve conversational proficiency in target language",
        "prerequisites": [],
    },
)


class StudyTrackService:
    def __init__(self, store: EntityStore, clock: Clock = utc_now) -> None:
        self.store = store
        self._clock = clock

    async def create_track(
        self,
        name: str,
        description: str = "",
        objective: str = "",
        prerequisites: Iterable[str] | None = None,
        is_template: bool = False,
        difficulty: TrackDifficulty = "beginner",
    ) -> StudyTrack:
        now = self._clock()
        track = StudyTrack(
            id=new_id("trk"),
            name=name,
            title=name,
            description=description,
            objective=objective,
            prerequisites=list(prerequisites or []),
            difficulty=difficulty,
            is_template=is_template,
            created_at=now,
            updated_at=now,
        )
        stored = await self.store.insert(COLLECTION, track.to_store())
        OPERATION_COUNT.labels("tracks", "create").inc()
        return StudyTrack.model_validate(stored)

    async def get_track(self, track_id: str) -> StudyTrack | None:
        row = await self.store.get(COLLECTION, track_id)
        return StudyTrack.model_validate(row) if row else None

    async def get_all_tracks(self) -> list[StudyTrack]:
        rows = await self.store.find(COLLECTION, descending=True)
        return [StudyTrack.model_validate(row) for row in rows]

    async def get_templates(self) -> list[StudyTrack]:
        rows = await self.store.find(COLLECTION, {"is_template": True}, descending=True)
        return [StudyTrack.model_validate(row) for row in rows]

    async def get_user_tracks(self) -> list[StudyTrack]:
        rows = await self.store.find(COLLECTION, {"is_template": False}, descending=True)
        return [StudyTrack.model_validate(row) for row in rows]

    async def add_resource_to_track(self, track_id: str, resource_id: str) -> StudyTrack:
        async with self.store.transaction() as tx:
            track = await _load(tx, track_id)
            resources = list(track.resources)
            if resource_id not in resources:
                resources.append(resource_id)
            row = await tx.update(COLLECTION, track_id, {"resources": resources})
        return StudyTrack.model_validate(row)

    async def remove_resource_from_track(self, track_id: str, resource_id: str) -> StudyTrack:
        async with self.store.transaction() as tx:
            track = await _load(tx, track_id)
            resources = [existing for existing in track.resources if existing != resource_id]
            row = await tx.update(COLLECTION, track_id, {"resources": resources})
        return StudyTrack.model_validate(row)

    async def add_milestone(
        self,
        track_id: str,
        name: str,
        description: str = "",
        required_resources: Iterable[str] | None = None,
    ) -> Milestone:
        async with self.store.transaction() as tx:
            track = await _load(tx, track_id)
            milestone = Milestone(
                id=new_id("ms"),
                name=name,
                description=description,
                required_resources=list(required_resources or []),
                order=len(track.milestones),
            )
            milestones = [*track.milestones, milestone]
            await tx.update(COLLECTION, track_id, {"milestones": [m.to_store() for m in milestones]})
        return milestone

    async def complete_milestone(self, track_id: str, milestone_id: str) -> StudyTrack:
        """Mark a milestone done and derive track completion.

        Completing an already-completed milestone succeeds without touching its
        original completion time, and the track's ``completed_at`` is only ever
        set once.
        """
        async with self.store.transaction() as tx:
            track = await _load(tx, track_id)
            index = next((i for i, m in enumerate(track.milestones) if m.id == milestone_id), None)
            if index is None:
                raise NotFoundError("Milestone", milestone_id)
            now = self._clock()
            milestone = track.milestones[index]
            if not milestone.completed:
                milestone.completed = True
                milestone.completed_at = now
            progress = track.progress
            progress.current_milestone = max(progress.current_milestone, index + 1)
            if track.is_completed and progress.completed_at is None:
                progress.completed_at = now
                logger.info("Study track %s completed", track_id)
            row = await tx.update(
                COLLECTION,
                track_id,
                {
                    "milestones": [m.to_store() for m in track.milestones],
                    "progress": progress.to_store(),
                },
            )
        return StudyTrack.model_validate(row)

    async def update_progress(self, track_id: str, progress: Mapping[str, Any]) -> StudyTrack:
        async with self.store.transaction() as tx:
            track = await _load(tx, track_id)
            merged = TrackProgress.from_input({**track.progress.to_store(), **snake_keys(progress)})
            if merged.started_at is None and merged.total_time_spent > 0:
                merged.started_at = self._clock()
            row = await tx.update(COLLECTION, track_id, {"progress": merged.to_store()})
        return StudyTrack.model_validate(row)

    async def duplicate_template(self, template_id: str, name: str) -> StudyTrack:
        """Copy a template into a fresh, non-template track with reset progress."""
        async with self.store.transaction() as tx:
            template = await _load(tx, template_id)
            if not template.is_template:
                raise NotATemplateError(template_id)
            now = self._clock()
            track = template.model_copy(
                deep=True,
                update={
                    "id": new_id("trk"),
                    "name": name,
                    "title": name,
                    "is_template": False,
                    "created_at": now,
                    "updated_at": now,
                    "progress": TrackProgress(),
                    "milestones": [
                        milestone.model_copy(
                            update={"id": new_id("ms"), "completed": False, "completed_at": None}
                        )
                        for milestone in template.milestones
                    ],
                },
            )
            stored = await tx.insert(COLLECTION, track.to_store())
        logger.debug("Duplicated template %s into track %s", template_id, track.id)
        return StudyTrack.model_validate(stored)

    async def delete_track(self, track_id: str) -> bool:
        """Delete the track row only; member resources are not owned by it."""
        return await self.store.delete(COLLECTION, track_id)

    async def seed_default_templates(self) -> list[StudyTrack]:
        """Create the built-in templates when the store holds no tracks yet."""
        if await self.store.count(COLLECTION):
            return []
        created = [
            await self.create_track(
                template["name"],
                template["description"],
                template["objective"],
                template["prerequisites"],
                is_template=True,
            )
            for template in DEFAULT_TEMPLATES
        ]
        logger.info("Created %s default study track templates", len(created))
        return created


async def _load(tx: Transaction, track_id: str) -> StudyTrack:
    row = await tx.get(COLLECTION, track_id)
    if row is None:
        raise NotFoundError("Study track", track_id)
    return StudyTrack.model_validate(row)


__all__ = ["DEFAULT_TEMPLATES", "StudyTrackService"]
