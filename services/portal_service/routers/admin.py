"""Branch admin endpoints: member import and stream control."""

import uuid

from fastapi import APIRouter, Depends, status

from services.portal_service.routers._helpers import (
    get_administration,
    get_stream_control,
    require_scope,
)
from services.portal_service.schemas import (
    MemberImportRequest,
    MemberImportResponse,
    StreamResponse,
    StreamViewerCountResponse,
)
from services.portal_service.services import (
    Administration,
    AuthContext,
    Scope,
    StreamControl,
)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/members/import",
    response_model=MemberImportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def import_members(
    payload: MemberImportRequest,
    ctx: AuthContext = Depends(require_scope(Scope.ADMIN)),
    administration: Administration = Depends(get_administration),
):
    """Bulk-insert parsed spreadsheet rows into the admin's branch."""
    count = await administration.import_members(
        ctx,
        [row.model_dump() for row in payload.rows],
        file_name=payload.file_name,
    )
    return MemberImportResponse(imported=count)


@router.post("/streams/{stream_id}/start", response_model=StreamResponse)
async def start_stream(
    stream_id: uuid.UUID,
    ctx: AuthContext = Depends(require_scope(Scope.ADMIN)),
    streams: StreamControl = Depends(get_stream_control),
):
    return await streams.start(ctx, stream_id)


@router.post("/streams/{stream_id}/end", response_model=StreamResponse)
async def end_stream(
    stream_id: uuid.UUID,
    ctx: AuthContext = Depends(require_scope(Scope.ADMIN)),
    streams: StreamControl = Depends(get_stream_control),
):
    return await streams.end(ctx, stream_id)


@router.post("/streams/{stream_id}/archive", response_model=StreamResponse)
async def archive_stream(
    stream_id: uuid.UUID,
    ctx: AuthContext = Depends(require_scope(Scope.ADMIN)),
    streams: StreamControl = Depends(get_stream_control),
):
    return await streams.archive(ctx, stream_id)


@router.get("/streams/{stream_id}/viewers", response_model=StreamViewerCountResponse)
async def stream_viewer_count(
    stream_id: uuid.UUID,
    ctx: AuthContext = Depends(require_scope(Scope.ADMIN)),
    streams: StreamControl = Depends(get_stream_control),
):
    """Polled by the streaming control panel while a broadcast is live."""
    count = await streams.viewer_count(ctx, stream_id)
    return StreamViewerCountResponse(stream_id=stream_id, viewer_count=count)
