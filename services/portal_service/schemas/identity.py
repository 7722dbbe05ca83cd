"""Auth, profile and route-guard schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from services.portal_service.models import AppRole
from services.portal_service.services.route_guard import GuardOutcome


# === Auth ===


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: Optional[str] = None


class PasswordResetRequest(BaseModel):
    email: EmailStr


class SessionResponse(BaseModel):
    user_id: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


class SignUpResponse(BaseModel):
    user_id: Optional[str] = None
    access_token: Optional[str] = None
    confirmation_required: bool


# === Profiles ===


class ProfileResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    branch_id: Optional[uuid.UUID] = None
    primary_role: AppRole
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=200)
    avatar_url: Optional[str] = None


class MeResponse(BaseModel):
    """Resolved profile plus the flags derived from its role."""

    profile: ProfileResponse
    is_admin: bool
    is_super_admin: bool
    profile_is_fallback: bool = False


# === Route guard ===


class NavLinkResponse(BaseModel):
    name: str
    path: str

    model_config = ConfigDict(from_attributes=True)


class NavigationResponse(BaseModel):
    section: str
    links: list[NavLinkResponse]
    switchers: list[NavLinkResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class GuardDecisionResponse(BaseModel):
    outcome: GuardOutcome
    allowed: bool
    redirect_to: Optional[str] = None
    navigation: Optional[NavigationResponse] = None

    model_config = ConfigDict(from_attributes=True)
