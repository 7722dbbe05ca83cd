"""Member transfer workflow model."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from services.portal_service.models.core import Branch, Profile
from services.portal_service.models.enums import TransferStatus, enum_values


class MemberTransfer(Base):
    """A request to move a member's home branch.

    Status only ever moves pending -> approved or pending -> rejected.
    ``processed_by`` is set exactly when the status is terminal and
    ``rejection_notes`` exactly when it is rejected.
    """

    __tablename__ = "member_transfers"
    __table_args__ = (
        Index("ix_member_transfers_to_branch_status", "to_branch_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    member_id: Mapped[str] = mapped_column(
        String, ForeignKey("profiles.id"), nullable=False, index=True
    )
    from_branch_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("church_branches.id"), nullable=False
    )
    to_branch_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("church_branches.id"), nullable=False
    )
    requested_by: Mapped[str] = mapped_column(
        String, ForeignKey("profiles.id"), nullable=False
    )
    status: Mapped[TransferStatus] = mapped_column(
        SAEnum(
            TransferStatus,
            name="transfer_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=TransferStatus.PENDING,
        server_default="pending",
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rejection_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    processed_by: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("profiles.id"), nullable=True
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )

    # Display-only joins
    from_branch: Mapped[Optional[Branch]] = relationship(
        Branch, foreign_keys=[from_branch_id], lazy="selectin"
    )
    to_branch: Mapped[Optional[Branch]] = relationship(
        Branch, foreign_keys=[to_branch_id], lazy="selectin"
    )
    member: Mapped[Optional[Profile]] = relationship(
        Profile, foreign_keys=[member_id], lazy="selectin"
    )
    processor: Mapped[Optional[Profile]] = relationship(
        Profile, foreign_keys=[processed_by], lazy="selectin"
    )

    def __repr__(self):
        return f"<MemberTransfer {self.id} {self.status}>"
