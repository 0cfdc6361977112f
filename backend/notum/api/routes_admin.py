"""Administrative routes: metrics, cross-context messages, export and import."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, Response

from notum.api.dependencies import get_bus, get_export_service
from notum.core.metrics import metrics_response
from notum.messaging.bus import MessageBus
from notum.models.dto import ExportRequest, MessageEnvelope
from notum.services import ExportImportService

router = APIRouter()

ZIP_MEDIA_TYPES = {"application/zip", "application/x-zip-compressed"}


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


@router.post("/messages", summary="Deliver a message envelope over the bus")
async def post_message(envelope: MessageEnvelope, bus: MessageBus = Depends(get_bus)) -> dict[str, Any]:
    return await bus.send(envelope.type, envelope.data)


@router.post("/export", summary="Export tracks as a JSON bundle or ZIP archive")
async def export_data(
    request: ExportRequest,
    service: ExportImportService = Depends(get_export_service),
) -> Response:
    filename = await service.export_filename(request.format, request.track_ids)
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if request.format == "zip":
        content = await service.export_archive(request.track_ids)
        return Response(content=content, media_type="application/zip", headers=headers)
    content = await service.export_json(request.track_ids)
    return Response(content=content, media_type="application/json", headers=headers)


@router.post("/import", summary="Import a JSON bundle or ZIP archive from the request body")
async def import_data(
    request: Request,
    service: ExportImportService = Depends(get_export_service),
) -> dict[str, Any]:
    body = await request.body()
    media_type = request.headers.get("content-type", "").split(";")[0].strip()
    if media_type in ZIP_MEDIA_TYPES:
        report = await service.import_archive(body)
    else:
        report = await service.import_json(body)
    return report.to_dict()


__all__ = ["router"]
