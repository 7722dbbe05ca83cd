"""System-wide endpoints: branches, users and the audit log."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from services.portal_service.models import AuditAction
from services.portal_service.routers._helpers import (
    get_administration,
    get_audit_recorder,
    require_scope,
)
from services.portal_service.schemas import (
    AuditPageResponse,
    BranchCreate,
    BranchResponse,
    BranchUpdate,
    ManagedUserCreate,
    ProfileResponse,
    UserUpdate,
)
from services.portal_service.services import (
    Administration,
    AuditRecorder,
    AuthContext,
    Scope,
)

router = APIRouter(prefix="/superadmin", tags=["superadmin"])


# === Branches ===


@router.get("/branches", response_model=list[BranchResponse])
async def list_branches(
    search: Optional[str] = Query(default=None),
    ctx: AuthContext = Depends(require_scope(Scope.SUPERADMIN)),
    administration: Administration = Depends(get_administration),
):
    return await administration.list_branches(search=search)


@router.post(
    "/branches", response_model=BranchResponse, status_code=status.HTTP_201_CREATED
)
async def create_branch(
    payload: BranchCreate,
    ctx: AuthContext = Depends(require_scope(Scope.SUPERADMIN)),
    administration: Administration = Depends(get_administration),
):
    return await administration.create_branch(
        ctx, payload.name, address=payload.address, district_id=payload.district_id
    )


@router.patch("/branches/{branch_id}", response_model=BranchResponse)
async def update_branch(
    branch_id: uuid.UUID,
    payload: BranchUpdate,
    ctx: AuthContext = Depends(require_scope(Scope.SUPERADMIN)),
    administration: Administration = Depends(get_administration),
):
    return await administration.update_branch(
        ctx, branch_id, **payload.model_dump(exclude_unset=True)
    )


# === Users ===


@router.get("/users", response_model=list[ProfileResponse])
async def list_users(
    search: Optional[str] = Query(default=None),
    ctx: AuthContext = Depends(require_scope(Scope.SUPERADMIN)),
    administration: Administration = Depends(get_administration),
):
    return await administration.list_users(search=search)


@router.post(
    "/users", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED
)
async def create_managed_user(
    payload: ManagedUserCreate,
    ctx: AuthContext = Depends(require_scope(Scope.SUPERADMIN)),
    administration: Administration = Depends(get_administration),
):
    return await administration.create_managed_user(
        ctx,
        email=payload.email,
        full_name=payload.full_name,
        role=payload.role,
        branch_id=payload.branch_id,
        password=payload.password,
    )


@router.patch("/users/{user_id}", response_model=ProfileResponse)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    ctx: AuthContext = Depends(require_scope(Scope.SUPERADMIN)),
    administration: Administration = Depends(get_administration),
):
    return await administration.update_user(
        ctx,
        user_id,
        primary_role=payload.primary_role,
        branch_id=payload.branch_id,
    )


# === Audit log ===


@router.get("/audit-logs", response_model=AuditPageResponse)
async def list_audit_logs(
    actor_id: Optional[str] = Query(default=None),
    action: Optional[AuditAction] = Query(default=None),
    search: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: Optional[int] = Query(default=None, ge=1),
    ctx: AuthContext = Depends(require_scope(Scope.SUPERADMIN)),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    result = await audit.query(
        actor_id=actor_id,
        action=action,
        search=search,
        page=page,
        page_size=page_size,
    )
    return AuditPageResponse.model_validate(result, from_attributes=True)
