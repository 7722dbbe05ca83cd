"""Persistence contract for the portal service.

Business services only talk to a ``PortalRepository``. The production
implementation is ``SqlPortalRepository``; any other backend must keep the
same semantics, in particular the all-or-nothing behaviour of
``finalize_transfer``.
"""

import abc
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from services.portal_service.models import (
    AuditAction,
    AuditLog,
    Branch,
    Member,
    MemberTransfer,
    Notification,
    Profile,
    Stream,
    TransferStatus,
)


class RepositoryError(Exception):
    """Infrastructure failure talking to the backing store (not "row not found")."""


@dataclass
class AuditQueryFilters:
    actor_id: Optional[str] = None
    action: Optional[AuditAction] = None
    search: Optional[str] = None


TransferTransition = Callable[[MemberTransfer], None]
StreamTransition = Callable[[Stream], None]


class PortalRepository(abc.ABC):
    # --- Profiles ---

    @abc.abstractmethod
    async def get_profile(self, profile_id: str) -> Optional[Profile]:
        """Return the profile or None when no row exists."""

    @abc.abstractmethod
    async def add_profile(self, profile: Profile) -> Profile: ...

    @abc.abstractmethod
    async def update_profile(self, profile_id: str, **fields) -> Optional[Profile]: ...

    @abc.abstractmethod
    async def list_profiles(self, search: Optional[str] = None) -> list[Profile]: ...

    # --- Branches ---

    @abc.abstractmethod
    async def get_branch(self, branch_id: uuid.UUID) -> Optional[Branch]: ...

    @abc.abstractmethod
    async def list_branches(
        self,
        search: Optional[str] = None,
        exclude_branch_id: Optional[uuid.UUID] = None,
    ) -> list[Branch]: ...

    @abc.abstractmethod
    async def add_branch(self, branch: Branch) -> Branch: ...

    @abc.abstractmethod
    async def update_branch(self, branch_id: uuid.UUID, **fields) -> Optional[Branch]: ...

    # --- Church member records ---

    @abc.abstractmethod
    async def add_members(self, members: Sequence[Member]) -> int: ...

    # --- Transfers ---

    @abc.abstractmethod
    async def add_transfer(self, transfer: MemberTransfer) -> MemberTransfer: ...

    @abc.abstractmethod
    async def get_transfer(self, transfer_id: uuid.UUID) -> Optional[MemberTransfer]: ...

    @abc.abstractmethod
    async def list_transfers(
        self,
        *,
        to_branch_id: Optional[uuid.UUID] = None,
        member_id: Optional[str] = None,
        status: Optional[TransferStatus] = None,
        newest_first: bool = True,
    ) -> list[MemberTransfer]: ...

    @abc.abstractmethod
    async def finalize_transfer(
        self,
        transfer_id: uuid.UUID,
        transition: TransferTransition,
        *,
        migrate: bool,
    ) -> Optional[MemberTransfer]:
        """Apply ``transition`` to the locked transfer row in one transaction.

        When ``migrate`` is true the member's profile branch, linked member
        records and ministry assignments move to the destination branch in the
        same transaction. If the transition or the migration raises, nothing
        is persisted and the exception propagates. Returns None when the
        transfer does not exist.
        """

    # --- Audit ---

    @abc.abstractmethod
    async def add_audit_entry(self, entry: AuditLog) -> AuditLog: ...

    @abc.abstractmethod
    async def query_audit_entries(
        self, filters: AuditQueryFilters, *, page: int, page_size: int
    ) -> tuple[list[AuditLog], int]:
        """Return one page of matching entries, newest first, plus the total."""

    # --- Notifications ---

    @abc.abstractmethod
    async def add_notification(self, notification: Notification) -> Notification: ...

    @abc.abstractmethod
    async def list_notifications(self, user_id: str) -> list[Notification]: ...

    # --- Streams ---

    @abc.abstractmethod
    async def get_stream(self, stream_id: uuid.UUID) -> Optional[Stream]: ...

    @abc.abstractmethod
    async def finalize_stream(
        self, stream_id: uuid.UUID, transition: StreamTransition
    ) -> Optional[Stream]:
        """Apply ``transition`` to the locked stream row and persist it."""
