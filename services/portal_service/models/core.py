"""Identity and tenancy models: profiles, branches, church members, assignments."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from services.portal_service.models.enums import (
    AppRole,
    AssignmentKind,
    MemberStatus,
    enum_values,
)


class Branch(Base):
    """A tenant/location unit of the organization."""

    __tablename__ = "church_branches"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    address: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    district_id: Mapped[str] = mapped_column(
        String, nullable=False, default="default", server_default="default"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<Branch {self.name}>"


class Profile(Base):
    """Application-level identity record layered on top of an auth session.

    ``id`` is the identity provider's user id. Profiles are never hard-deleted.
    """

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    email: Mapped[str] = mapped_column(String, nullable=False, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    branch_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("church_branches.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    primary_role: Mapped[AppRole] = mapped_column(
        SAEnum(
            AppRole,
            name="app_role_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=AppRole.MEMBER,
        server_default="member",
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<Profile {self.email} ({self.primary_role})>"


class Member(Base):
    """Church member record kept per branch, optionally linked to a profile."""

    __tablename__ = "members"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    profile_id: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )
    branch_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("church_branches.id"),
        nullable=False,
        index=True,
    )
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    status: Mapped[MemberStatus] = mapped_column(
        SAEnum(
            MemberStatus,
            name="member_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=MemberStatus.ACTIVE,
        server_default="active",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<Member {self.email}>"


class MinistryAssignment(Base):
    """Ministry, department or group assignment that follows a member's branch."""

    __tablename__ = "ministry_assignments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    profile_id: Mapped[str] = mapped_column(
        String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    branch_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("church_branches.id"), nullable=False
    )
    kind: Mapped[AssignmentKind] = mapped_column(
        SAEnum(
            AssignmentKind,
            name="assignment_kind_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
