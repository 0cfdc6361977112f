"""Study track routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from notum.api.dependencies import get_track_service
from notum.models.dto import (
    DeleteResponse,
    DuplicateTemplateRequest,
    MilestoneCreateRequest,
    TrackCreateRequest,
    TrackProgressRequest,
    TrackResourceRequest,
)
from notum.services import StudyTrackService

router = APIRouter()


@router.get("/tracks", summary="List study tracks, newest first")
async def list_tracks(
    templates: bool | None = Query(default=None, description="Only templates (true) or only user tracks (false)"),
    service: StudyTrackService = Depends(get_track_service),
) -> list[dict[str, Any]]:
    if templates is None:
        tracks = await service.get_all_tracks()
    elif templates:
        tracks = await service.get_templates()
    else:
        tracks = await service.get_user_tracks()
    return [track.to_portable() for track in tracks]


@router.post("/tracks", summary="Create a study track")
async def create_track(
    request: TrackCreateRequest,
    service: StudyTrackService = Depends(get_track_service),
) -> dict[str, Any]:
    track = await service.create_track(
        request.name,
        request.description,
        request.objective,
        request.prerequisites,
        is_template=request.is_template,
        difficulty=request.difficulty,
    )
    return track.to_portable()


@router.get("/tracks/{track_id}")
async def get_track(track_id: str, service: StudyTrackService = Depends(get_track_service)) -> dict[str, Any]:
    track = await service.get_track(track_id)
    if track is None:
        raise HTTPException(status_code=404, detail="Study track not found")
    return track.to_portable()


@router.delete("/tracks/{track_id}", response_model=DeleteResponse, summary="Delete the track only")
async def delete_track(track_id: str, service: StudyTrackService = Depends(get_track_service)) -> DeleteResponse:
    if not await service.delete_track(track_id):
        raise HTTPException(status_code=404, detail="Study track not found")
    return DeleteResponse(deleted=True)


@router.post("/tracks/{track_id}/resources", summary="Add a resource to a track")
async def add_track_resource(
    track_id: str,
    request: TrackResourceRequest,
    service: StudyTrackService = Depends(get_track_service),
) -> dict[str, Any]:
    track = await service.add_resource_to_track(track_id, request.resource_id)
    return track.to_portable()


@router.delete("/tracks/{track_id}/resources/{resource_id}", summary="Remove a resource from a track")
async def remove_track_resource(
    track_id: str,
    resource_id: str,
    service: StudyTrackService = Depends(get_track_service),
) -> dict[str, Any]:
    track = await service.remove_resource_from_track(track_id, resource_id)
    return track.to_portable()


@router.post("/tracks/{track_id}/milestones", summary="Append a milestone")
async def add_milestone(
    track_id: str,
    request: MilestoneCreateRequest,
    service: StudyTrackService = Depends(get_track_service),
) -> dict[str, Any]:
    milestone = await service.add_milestone(track_id, request.name, request.description, request.required_resources)
    return milestone.to_portable()


@router.post("/tracks/{track_id}/milestones/{milestone_id}/complete", summary="Complete a milestone")
async def complete_milestone(
    track_id: str,
    milestone_id: str,
    service: StudyTrackService = Depends(get_track_service),
) -> dict[str, Any]:
    track = await service.complete_milestone(track_id, milestone_id)
    return track.to_portable()


@router.patch("/tracks/{track_id}/progress", summary="Merge track progress")
async def update_track_progress(
    track_id: str,
    request: TrackProgressRequest,
    service: StudyTrackService = Depends(get_track_service),
) -> dict[str, Any]:
    track = await service.update_progress(track_id, request.model_dump(exclude_none=True))
    return track.to_portable()


@router.post("/tracks/{template_id}/duplicate", summary="Start a track from a template")
async def duplicate_template(
    template_id: str,
    request: DuplicateTemplateRequest,
    service: StudyTrackService = Depends(get_track_service),
) -> dict[str, Any]:
    track = await service.duplicate_template(template_id, request.name)
    return track.to_portable()


__all__ = ["router"]
