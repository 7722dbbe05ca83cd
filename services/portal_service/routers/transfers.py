"""Member transfer endpoints: member requests and the branch admin queue."""

import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from services.portal_service.models import TransferStatus
from services.portal_service.routers._helpers import (
    get_administration,
    get_transfer_workflow,
    require_scope,
)
from services.portal_service.schemas import (
    BranchResponse,
    TransferCreate,
    TransferReject,
    TransferResponse,
)
from services.portal_service.services import (
    Administration,
    AuthContext,
    Scope,
    TransferWorkflow,
)

router = APIRouter(prefix="/transfers", tags=["transfers"])
admin_router = APIRouter(prefix="/admin/transfers", tags=["admin-transfers"])
branches_router = APIRouter(prefix="/branches", tags=["branches"])


# === Member portal ===


@router.post("/", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
async def submit_transfer(
    payload: TransferCreate,
    ctx: AuthContext = Depends(require_scope(Scope.ANY)),
    workflow: TransferWorkflow = Depends(get_transfer_workflow),
):
    return await workflow.submit(
        ctx,
        destination_branch_id=payload.to_branch_id,
        notes=payload.notes,
        member_id=payload.member_id,
    )


@router.get("/mine", response_model=list[TransferResponse])
async def list_my_transfers(
    transfer_status: Optional[TransferStatus] = Query(default=None, alias="status"),
    order: Literal["asc", "desc"] = Query(default="desc"),
    ctx: AuthContext = Depends(require_scope(Scope.ANY)),
    workflow: TransferWorkflow = Depends(get_transfer_workflow),
):
    return await workflow.list_for_member(
        ctx, transfer_status=transfer_status, newest_first=order == "desc"
    )


@branches_router.get("/", response_model=list[BranchResponse])
async def list_branches(
    search: Optional[str] = Query(default=None),
    exclude_branch_id: Optional[uuid.UUID] = Query(default=None),
    ctx: AuthContext = Depends(require_scope(Scope.ANY)),
    administration: Administration = Depends(get_administration),
):
    """Branches a member can pick as a transfer destination."""
    return await administration.list_branches(
        search=search, exclude_branch_id=exclude_branch_id
    )


# === Branch admin queue ===


@admin_router.get("/", response_model=list[TransferResponse])
async def list_branch_transfers(
    branch_id: Optional[uuid.UUID] = Query(default=None),
    transfer_status: Optional[TransferStatus] = Query(default=None, alias="status"),
    order: Literal["asc", "desc"] = Query(default="desc"),
    ctx: AuthContext = Depends(require_scope(Scope.ADMIN)),
    workflow: TransferWorkflow = Depends(get_transfer_workflow),
):
    return await workflow.list_for_branch(
        ctx,
        branch_id=branch_id,
        transfer_status=transfer_status,
        newest_first=order == "desc",
    )


@admin_router.post("/{transfer_id}/approve", response_model=TransferResponse)
async def approve_transfer(
    transfer_id: uuid.UUID,
    ctx: AuthContext = Depends(require_scope(Scope.ADMIN)),
    workflow: TransferWorkflow = Depends(get_transfer_workflow),
):
    return await workflow.approve(ctx, transfer_id)


@admin_router.post("/{transfer_id}/reject", response_model=TransferResponse)
async def reject_transfer(
    transfer_id: uuid.UUID,
    payload: Optional[TransferReject] = None,
    ctx: AuthContext = Depends(require_scope(Scope.ADMIN)),
    workflow: TransferWorkflow = Depends(get_transfer_workflow),
):
    reason = payload.reason if payload else None
    return await workflow.reject(ctx, transfer_id, reason=reason)
