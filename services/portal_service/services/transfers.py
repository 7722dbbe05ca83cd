"""Cross-branch member transfer workflow.

States: pending (initial), approved and rejected (terminal). The only legal
transitions are pending -> approved and pending -> rejected, enforced by
``transition_transfer``. Terminal transitions run inside
``PortalRepository.finalize_transfer`` so the status check, the status write
and the branch migration commit or fail together.
"""

import uuid
from typing import Optional

from fastapi import HTTPException, status
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger

from services.portal_service.models import (
    AuditAction,
    MemberTransfer,
    Notification,
    Profile,
    TransferStatus,
)
from services.portal_service.repositories.base import PortalRepository, RepositoryError
from services.portal_service.services.audit import AuditRecorder
from services.portal_service.services.identity import AuthContext
from services.portal_service.services.roles import has_branch_scope

logger = get_logger(__name__)

NO_REASON_PROVIDED = "No reason provided"

ALLOWED_TRANSITIONS: dict[TransferStatus, frozenset[TransferStatus]] = {
    TransferStatus.PENDING: frozenset({TransferStatus.APPROVED, TransferStatus.REJECTED}),
    TransferStatus.APPROVED: frozenset(),
    TransferStatus.REJECTED: frozenset(),
}


class InvalidTransitionError(Exception):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move from {current.value} to {target.value}")


def transition_transfer(
    transfer: MemberTransfer,
    target: TransferStatus,
    *,
    processed_by: str,
    rejection_notes: Optional[str] = None,
) -> None:
    """Apply a terminal transition in place, or raise InvalidTransitionError."""
    current = TransferStatus(transfer.status)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current, target)

    transfer.status = target
    transfer.processed_by = processed_by
    transfer.processed_at = utc_now()
    if target == TransferStatus.REJECTED:
        transfer.rejection_notes = rejection_notes or NO_REASON_PROVIDED
    else:
        transfer.rejection_notes = None


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text or None


def _require_profile(ctx: AuthContext) -> Profile:
    if not ctx.has_session or ctx.profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return ctx.profile


class TransferWorkflow:
    def __init__(self, repository: PortalRepository, audit: AuditRecorder):
        self.repository = repository
        self.audit = audit

    async def submit(
        self,
        ctx: AuthContext,
        destination_branch_id: uuid.UUID,
        notes: Optional[str] = None,
        member_id: Optional[str] = None,
    ) -> MemberTransfer:
        """Create a pending transfer of the caller to ``destination_branch_id``."""
        profile = _require_profile(ctx)

        if member_id is not None and member_id != profile.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only request a transfer for yourself.",
            )
        if profile.branch_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You are not assigned to a branch yet.",
            )
        if str(destination_branch_id) == str(profile.branch_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You are already in this branch.",
            )

        try:
            destination = await self.repository.get_branch(destination_branch_id)
        except RepositoryError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc
        if destination is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Destination branch not found",
            )

        transfer = MemberTransfer(
            id=uuid.uuid4(),
            member_id=profile.id,
            from_branch_id=profile.branch_id,
            to_branch_id=destination.id,
            requested_by=profile.id,
            status=TransferStatus.PENDING,
            notes=_clean(notes),
            created_at=utc_now(),
        )
        try:
            transfer = await self.repository.add_transfer(transfer)
        except RepositoryError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Failed to submit transfer request: {exc}",
            ) from exc

        logger.info(
            "Transfer requested",
            extra={
                "extra_fields": {
                    "transfer_id": str(transfer.id),
                    "member_id": profile.id,
                    "to_branch_id": str(destination.id),
                }
            },
        )
        await self.audit.record(
            profile.id,
            AuditAction.SUBMIT_TRANSFER,
            {
                "transfer_id": transfer.id,
                "from_branch_id": transfer.from_branch_id,
                "to_branch_id": transfer.to_branch_id,
            },
        )
        return transfer

    async def _load_for_processing(
        self, ctx: AuthContext, transfer_id: uuid.UUID
    ) -> MemberTransfer:
        profile = _require_profile(ctx)
        try:
            transfer = await self.repository.get_transfer(transfer_id)
        except RepositoryError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc
        if transfer is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Transfer not found"
            )
        if not has_branch_scope(profile, transfer.to_branch_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only an administrator of the destination branch can process this transfer.",
            )
        if transfer.status != TransferStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Transfer is already {TransferStatus(transfer.status).value}",
            )
        return transfer

    async def _finalize(
        self,
        transfer_id: uuid.UUID,
        target: TransferStatus,
        *,
        processed_by: str,
        rejection_notes: Optional[str] = None,
    ) -> MemberTransfer:
        try:
            updated = await self.repository.finalize_transfer(
                transfer_id,
                lambda t: transition_transfer(
                    t,
                    target,
                    processed_by=processed_by,
                    rejection_notes=rejection_notes,
                ),
                migrate=target == TransferStatus.APPROVED,
            )
        except InvalidTransitionError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Transfer is already {exc.current.value}",
            ) from exc
        except RepositoryError as exc:
            logger.error(
                "Transfer transition failed; transfer left pending",
                extra={
                    "extra_fields": {
                        "transfer_id": str(transfer_id),
                        "target": target.value,
                        "error": str(exc),
                    }
                },
            )
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Failed to update transfer: {exc}",
            ) from exc

        if updated is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Transfer not found"
            )
        return updated

    async def approve(self, ctx: AuthContext, transfer_id: uuid.UUID) -> MemberTransfer:
        """Approve a pending transfer and migrate the member to the destination branch."""
        transfer = await self._load_for_processing(ctx, transfer_id)
        processor_id = ctx.profile.id

        updated = await self._finalize(
            transfer.id, TransferStatus.APPROVED, processed_by=processor_id
        )

        logger.info(
            "Transfer approved",
            extra={
                "extra_fields": {
                    "transfer_id": str(updated.id),
                    "processed_by": processor_id,
                }
            },
        )
        await self.audit.record(
            processor_id,
            AuditAction.APPROVE_TRANSFER,
            {
                "transfer_id": updated.id,
                "member_id": updated.member_id,
                "from_branch_id": updated.from_branch_id,
                "to_branch_id": updated.to_branch_id,
            },
        )
        await self._notify_member(
            updated,
            title="Transfer approved",
            message="Your transfer request has been approved. Welcome to your new branch!",
        )
        return updated

    async def reject(
        self,
        ctx: AuthContext,
        transfer_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> MemberTransfer:
        """Reject a pending transfer. The reason is always written."""
        transfer = await self._load_for_processing(ctx, transfer_id)
        processor_id = ctx.profile.id
        reason = _clean(reason) or NO_REASON_PROVIDED

        updated = await self._finalize(
            transfer.id,
            TransferStatus.REJECTED,
            processed_by=processor_id,
            rejection_notes=reason,
        )

        logger.info(
            "Transfer rejected",
            extra={
                "extra_fields": {
                    "transfer_id": str(updated.id),
                    "processed_by": processor_id,
                }
            },
        )
        await self.audit.record(
            processor_id,
            AuditAction.REJECT_TRANSFER,
            {
                "transfer_id": updated.id,
                "member_id": updated.member_id,
                "reason": reason,
            },
        )
        await self._notify_member(
            updated,
            title="Transfer rejected",
            message=f"Your transfer request was rejected: {reason}",
        )
        return updated

    async def list_for_branch(
        self,
        ctx: AuthContext,
        branch_id: Optional[uuid.UUID] = None,
        transfer_status: Optional[TransferStatus] = None,
        newest_first: bool = True,
    ) -> list[MemberTransfer]:
        """Transfers addressed to a branch, newest first by default."""
        profile = _require_profile(ctx)
        branch_id = branch_id or profile.branch_id
        if branch_id is None:
            return []
        if not has_branch_scope(profile, branch_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not administer this branch.",
            )
        try:
            return await self.repository.list_transfers(
                to_branch_id=branch_id,
                status=transfer_status,
                newest_first=newest_first,
            )
        except RepositoryError as exc:
            logger.error(
                "Could not list branch transfers",
                extra={"extra_fields": {"branch_id": str(branch_id), "error": str(exc)}},
            )
            return []

    async def list_for_member(
        self,
        ctx: AuthContext,
        transfer_status: Optional[TransferStatus] = None,
        newest_first: bool = True,
    ) -> list[MemberTransfer]:
        """The caller's own transfer history."""
        profile = _require_profile(ctx)
        try:
            return await self.repository.list_transfers(
                member_id=profile.id,
                status=transfer_status,
                newest_first=newest_first,
            )
        except RepositoryError as exc:
            logger.error(
                "Could not list member transfers",
                extra={"extra_fields": {"member_id": profile.id, "error": str(exc)}},
            )
            return []

    async def _notify_member(
        self, transfer: MemberTransfer, *, title: str, message: str
    ) -> None:
        notification = Notification(
            id=uuid.uuid4(),
            user_id=transfer.member_id,
            title=title,
            message=message,
            link="/portal/transfers",
            read=False,
            created_at=utc_now(),
        )
        try:
            await self.repository.add_notification(notification)
        except RepositoryError as exc:
            logger.warning(
                "Transfer notification failed",
                extra={
                    "extra_fields": {
                        "transfer_id": str(transfer.id),
                        "error": str(exc),
                    }
                },
            )
