"""Shared dependencies for portal service routers."""

from typing import Optional

from fastapi import Depends
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.common.error_handler import RedirectRequired
from libs.common.logging import set_user_context
from libs.common.supabase import get_supabase_admin_client, get_supabase_client
from libs.db.session import get_async_db
from sqlalchemy.ext.asyncio import AsyncSession

from services.portal_service.repositories import PortalRepository, SqlPortalRepository
from services.portal_service.services import (
    Administration,
    AuditRecorder,
    AuthContext,
    IdentityProvider,
    SelfService,
    SessionResolver,
    StreamControl,
    TransferWorkflow,
)
from services.portal_service.services.route_guard import LOGIN_PATH, Scope, authorize


async def get_repository(db: AsyncSession = Depends(get_async_db)) -> PortalRepository:
    return SqlPortalRepository(db)


def get_identity_provider() -> IdentityProvider:
    return IdentityProvider(get_supabase_client(), get_supabase_admin_client())


async def get_auth_context(
    user: Optional[AuthUser] = Depends(get_optional_user),
    repository: PortalRepository = Depends(get_repository),
) -> AuthContext:
    """Resolve the request's session into an authorization context."""
    ctx = await SessionResolver(repository).resolve(user)
    if ctx.profile is not None:
        set_user_context(ctx.profile.id)
    return ctx


def require_scope(scope: Scope):
    """
    Build a dependency that admits only contexts the route guard allows.

    Denials raise RedirectRequired, which the app turns into a 303 to the
    guard's redirect target.
    """

    async def dependency(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        decision = authorize(ctx, scope)
        if not decision.allowed:
            raise RedirectRequired(decision.redirect_to or LOGIN_PATH)
        return ctx

    return dependency


def get_audit_recorder(
    repository: PortalRepository = Depends(get_repository),
) -> AuditRecorder:
    return AuditRecorder(repository)


def get_transfer_workflow(
    repository: PortalRepository = Depends(get_repository),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> TransferWorkflow:
    return TransferWorkflow(repository, audit)


def get_administration(
    repository: PortalRepository = Depends(get_repository),
    audit: AuditRecorder = Depends(get_audit_recorder),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> Administration:
    return Administration(repository, audit, identity_provider)


def get_stream_control(
    repository: PortalRepository = Depends(get_repository),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> StreamControl:
    return StreamControl(repository, audit)


def get_self_service(
    repository: PortalRepository = Depends(get_repository),
) -> SelfService:
    return SelfService(repository)
