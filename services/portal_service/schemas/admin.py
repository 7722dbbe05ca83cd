"""Branch, user, member import, stream, notification and audit schemas."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from services.portal_service.models import (
    AppRole,
    AuditAction,
    StreamPrivacy,
    StreamStatus,
)
from services.portal_service.schemas.transfer import ProfileSummary

# ============================================================================
# BRANCHES
# ============================================================================


class BranchCreate(BaseModel):
    name: str = Field(..., max_length=200)
    address: Optional[str] = None
    district_id: Optional[str] = None


class BranchUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    address: Optional[str] = None
    district_id: Optional[str] = None


class BranchResponse(BaseModel):
    id: uuid.UUID
    name: str
    address: Optional[str] = None
    district_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# USERS
# ============================================================================


class UserUpdate(BaseModel):
    primary_role: Optional[AppRole] = None
    branch_id: Optional[uuid.UUID] = None


class ManagedUserCreate(BaseModel):
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=200)
    role: AppRole = AppRole.MEMBER
    branch_id: Optional[uuid.UUID] = None
    password: Optional[str] = Field(default=None, min_length=6)


# ============================================================================
# MEMBER IMPORT
# ============================================================================


class MemberImportRow(BaseModel):
    """One spreadsheet row. Rows missing a required column are skipped, not rejected."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class MemberImportRequest(BaseModel):
    rows: list[MemberImportRow]
    file_name: Optional[str] = None


class MemberImportResponse(BaseModel):
    imported: int


# ============================================================================
# STREAMS
# ============================================================================


class StreamResponse(BaseModel):
    id: uuid.UUID
    branch_id: uuid.UUID
    title: str
    description: Optional[str] = None
    platform: str
    privacy: StreamPrivacy
    status: StreamStatus
    scheduled_start: Optional[datetime] = None
    viewer_count: int = 0
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StreamViewerCountResponse(BaseModel):
    stream_id: uuid.UUID
    viewer_count: int


# ============================================================================
# NOTIFICATIONS
# ============================================================================


class NotificationResponse(BaseModel):
    id: uuid.UUID
    title: str
    message: str
    link: Optional[str] = None
    read: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# AUDIT
# ============================================================================


class AuditLogResponse(BaseModel):
    id: uuid.UUID
    user_id: Optional[str] = None
    action: AuditAction
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    actor: Optional[ProfileSummary] = None

    model_config = ConfigDict(from_attributes=True)


class AuditPageResponse(BaseModel):
    items: list[AuditLogResponse]
    total: int
    page: int
    page_size: int

    model_config = ConfigDict(from_attributes=True)
