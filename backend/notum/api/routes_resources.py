"""Resource and highlight routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from notum.api.dependencies import get_highlight_service, get_resource_service
from notum.models.dto import (
    DeleteResponse,
    HighlightCreateRequest,
    HighlightUpdateRequest,
    ProgressUpdateRequest,
    ResourceCreateRequest,
)
from notum.models.entities import ResourceType
from notum.services import HighlightService, ResourceService

router = APIRouter()


@router.get("/resources", summary="List resources, newest first")
async def list_resources(
    type: ResourceType | None = Query(default=None),
    service: ResourceService = Depends(get_resource_service),
) -> list[dict[str, Any]]:
    resources = await service.get_resources_by_type(type) if type else await service.get_all_resources()
    return [resource.to_portable() for resource in resources]


@router.post("/resources", summary="Capture a resource")
async def create_resource(
    request: ResourceCreateRequest,
    service: ResourceService = Depends(get_resource_service),
) -> dict[str, Any]:
    resource = await service.create_resource(
        request.type, request.url, request.title, request.content, request.metadata
    )
    return resource.to_portable()


@router.get("/resources/search", summary="Substring search over title, content and url")
async def search_resources(
    q: str = Query(..., min_length=1),
    service: ResourceService = Depends(get_resource_service),
) -> list[dict[str, Any]]:
    return [resource.to_portable() for resource in await service.search_resources(q)]


@router.get("/resources/{resource_id}")
async def get_resource(resource_id: str, service: ResourceService = Depends(get_resource_service)) -> dict[str, Any]:
    resource = await service.get_resource(resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return resource.to_portable()


@router.patch("/resources/{resource_id}/progress", summary="Merge study progress")
async def update_resource_progress(
    resource_id: str,
    request: ProgressUpdateRequest,
    service: ResourceService = Depends(get_resource_service),
) -> dict[str, Any]:
    resource = await service.update_progress(resource_id, request.model_dump(exclude_none=True))
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return resource.to_portable()


@router.delete("/resources/{resource_id}", response_model=DeleteResponse, summary="Delete a resource and what it owns")
async def delete_resource(resource_id: str, service: ResourceService = Depends(get_resource_service)) -> DeleteResponse:
    if not await service.delete_resource(resource_id):
        raise HTTPException(status_code=404, detail="Resource not found")
    return DeleteResponse(deleted=True)


@router.get("/resources/{resource_id}/highlights", summary="Highlights of a resource, oldest first")
async def list_resource_highlights(
    resource_id: str,
    service: HighlightService = Depends(get_highlight_service),
) -> list[dict[str, Any]]:
    return [highlight.to_portable() for highlight in await service.get_highlights_by_resource(resource_id)]


@router.get("/highlights", summary="List highlights, newest first")
async def list_highlights(
    color: str | None = Query(default=None),
    service: HighlightService = Depends(get_highlight_service),
) -> list[dict[str, Any]]:
    highlights = await service.get_highlights_by_color(color) if color else await service.get_all_highlights()
    return [highlight.to_portable() for highlight in highlights]


@router.post("/highlights", summary="Create a highlight")
async def create_highlight(
    request: HighlightCreateRequest,
    service: HighlightService = Depends(get_highlight_service),
) -> dict[str, Any]:
    highlight = await service.create_highlight(
        request.resource_id,
        request.url,
        request.text,
        request.context,
        request.position,
        request.color,
        request.note,
    )
    return highlight.to_portable()


@router.get("/highlights/search", summary="Substring search over text, note and context")
async def search_highlights(
    q: str = Query(..., min_length=1),
    service: HighlightService = Depends(get_highlight_service),
) -> list[dict[str, Any]]:
    return [highlight.to_portable() for highlight in await service.search_highlights(q)]


@router.get("/highlights/{highlight_id}")
async def get_highlight(highlight_id: str, service: HighlightService = Depends(get_highlight_service)) -> dict[str, Any]:
    highlight = await service.get_highlight(highlight_id)
    if highlight is None:
        raise HTTPException(status_code=404, detail="Highlight not found")
    return highlight.to_portable()


@router.patch("/highlights/{highlight_id}")
async def update_highlight(
    highlight_id: str,
    request: HighlightUpdateRequest,
    service: HighlightService = Depends(get_highlight_service),
) -> dict[str, Any]:
    highlight = await service.update_highlight(highlight_id, request.text, request.note, request.color)
    if highlight is None:
        raise HTTPException(status_code=404, detail="Highlight not found")
    return highlight.to_portable()


@router.delete("/highlights/{highlight_id}", response_model=DeleteResponse)
async def delete_highlight(
    highlight_id: str,
    service: HighlightService = Depends(get_highlight_service),
) -> DeleteResponse:
    if not await service.delete_highlight(highlight_id):
        raise HTTPException(status_code=404, detail="Highlight not found")
    return DeleteResponse(deleted=True)


__all__ = ["router"]
