"""Transfer request schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from services.portal_service.models import TransferStatus


class BranchSummary(BaseModel):
    id: uuid.UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


class ProfileSummary(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TransferCreate(BaseModel):
    to_branch_id: uuid.UUID
    notes: Optional[str] = Field(default=None, max_length=2000)
    # Accepted for API compatibility; must equal the caller when given
    member_id: Optional[str] = None


class TransferReject(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=2000)


class TransferResponse(BaseModel):
    id: uuid.UUID
    member_id: str
    from_branch_id: uuid.UUID
    to_branch_id: uuid.UUID
    requested_by: str
    status: TransferStatus
    notes: Optional[str] = None
    rejection_notes: Optional[str] = None
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: datetime

    from_branch: Optional[BranchSummary] = None
    to_branch: Optional[BranchSummary] = None
    member: Optional[ProfileSummary] = None

    model_config = ConfigDict(from_attributes=True)
