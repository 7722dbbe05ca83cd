"""Session, profile and route-guard endpoints."""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser

from services.portal_service.routers._helpers import (
    get_auth_context,
    get_identity_provider,
    get_self_service,
    require_scope,
)
from services.portal_service.schemas import (
    GuardDecisionResponse,
    MeResponse,
    NotificationResponse,
    PasswordResetRequest,
    ProfileResponse,
    ProfileUpdate,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    SignUpResponse,
)
from services.portal_service.services import (
    AuthContext,
    IdentityProvider,
    Scope,
    SelfService,
    authorize_path,
)

router = APIRouter(prefix="/auth", tags=["auth"])
me_router = APIRouter(prefix="/me", tags=["me"])


@router.post("/sign-in", response_model=SessionResponse)
async def sign_in(
    payload: SignInRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
):
    return await provider.sign_in(payload.email, payload.password)


@router.post(
    "/sign-up", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED
)
async def sign_up(
    payload: SignUpRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
):
    return await provider.sign_up(payload.email, payload.password, payload.full_name)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    current_user: AuthUser = Depends(get_current_user),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    await provider.sign_out(current_user.access_token)


@router.post("/password-reset", status_code=status.HTTP_202_ACCEPTED)
async def password_reset(
    payload: PasswordResetRequest,
    provider: IdentityProvider = Depends(get_identity_provider),
):
    await provider.send_password_reset(payload.email)
    return {"status": "sent"}


@router.get("/me", response_model=MeResponse)
async def get_me(ctx: AuthContext = Depends(get_auth_context)):
    """Return the resolved profile and its derived role flags."""
    if not ctx.has_session or ctx.profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        )
    return MeResponse(
        profile=ProfileResponse.model_validate(ctx.profile),
        is_admin=ctx.is_admin,
        is_super_admin=ctx.is_super_admin,
        profile_is_fallback=ctx.profile_is_fallback,
    )


@router.get("/authorize", response_model=GuardDecisionResponse)
async def authorize_ui_path(
    path: Optional[str] = Query(default=None),
    ctx: AuthContext = Depends(get_auth_context),
):
    """Route guard decision and navigation for a UI path."""
    decision = authorize_path(ctx, path)
    return GuardDecisionResponse(
        outcome=decision.outcome,
        allowed=decision.allowed,
        redirect_to=decision.redirect_to,
        navigation=asdict(decision.navigation) if decision.navigation else None,
    )


@me_router.patch("/profile", response_model=ProfileResponse)
async def update_my_profile(
    payload: ProfileUpdate,
    ctx: AuthContext = Depends(require_scope(Scope.ANY)),
    self_service: SelfService = Depends(get_self_service),
):
    return await self_service.update_my_profile(
        ctx, full_name=payload.full_name, avatar_url=payload.avatar_url
    )


@me_router.get("/notifications", response_model=list[NotificationResponse])
async def list_my_notifications(
    ctx: AuthContext = Depends(require_scope(Scope.ANY)),
    self_service: SelfService = Depends(get_self_service),
):
    return await self_service.list_notifications(ctx)
