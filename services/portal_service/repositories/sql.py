"""Postgres-backed repository using async SQLAlchemy."""

import uuid
from contextlib import asynccontextmanager
from typing import Optional, Sequence

from libs.common.logging import get_logger
from sqlalchemy import String, cast, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.portal_service.models import (
    AuditLog,
    Branch,
    Member,
    MemberTransfer,
    MinistryAssignment,
    Notification,
    Profile,
    Stream,
    TransferStatus,
)
from services.portal_service.repositories.base import (
    AuditQueryFilters,
    PortalRepository,
    RepositoryError,
    StreamTransition,
    TransferTransition,
)

logger = get_logger(__name__)


class SqlPortalRepository(PortalRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _translate_errors(self, operation: str):
        try:
            yield
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(
                "Repository operation failed",
                extra={"extra_fields": {"operation": operation, "error": str(exc)}},
            )
            raise RepositoryError(f"{operation} failed: {exc}") from exc

    async def _save(self, instance, operation: str):
        async with self._translate_errors(operation):
            self.db.add(instance)
            await self.db.commit()
            await self.db.refresh(instance)
        return instance

    # --- Profiles ---

    async def get_profile(self, profile_id: str) -> Optional[Profile]:
        async with self._translate_errors("get_profile"):
            result = await self.db.execute(
                select(Profile).where(Profile.id == profile_id)
            )
            return result.scalar_one_or_none()

    async def add_profile(self, profile: Profile) -> Profile:
        return await self._save(profile, "add_profile")

    async def update_profile(self, profile_id: str, **fields) -> Optional[Profile]:
        async with self._translate_errors("update_profile"):
            profile = await self.db.get(Profile, profile_id)
            if profile is None:
                return None
            for field, value in fields.items():
                setattr(profile, field, value)
            await self.db.commit()
            await self.db.refresh(profile)
            return profile

    async def list_profiles(self, search: Optional[str] = None) -> list[Profile]:
        query = select(Profile)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(Profile.full_name.ilike(pattern), Profile.email.ilike(pattern))
            )
        query = query.order_by(Profile.full_name.asc().nulls_last(), Profile.email)
        async with self._translate_errors("list_profiles"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    # --- Branches ---

    async def get_branch(self, branch_id: uuid.UUID) -> Optional[Branch]:
        async with self._translate_errors("get_branch"):
            return await self.db.get(Branch, branch_id)

    async def list_branches(
        self,
        search: Optional[str] = None,
        exclude_branch_id: Optional[uuid.UUID] = None,
    ) -> list[Branch]:
        query = select(Branch)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(Branch.name.ilike(pattern), Branch.address.ilike(pattern))
            )
        if exclude_branch_id is not None:
            query = query.where(Branch.id != exclude_branch_id)
        query = query.order_by(Branch.name)
        async with self._translate_errors("list_branches"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def add_branch(self, branch: Branch) -> Branch:
        return await self._save(branch, "add_branch")

    async def update_branch(self, branch_id: uuid.UUID, **fields) -> Optional[Branch]:
        async with self._translate_errors("update_branch"):
            branch = await self.db.get(Branch, branch_id)
            if branch is None:
                return None
            for field, value in fields.items():
                setattr(branch, field, value)
            await self.db.commit()
            await self.db.refresh(branch)
            return branch

    # --- Church member records ---

    async def add_members(self, members: Sequence[Member]) -> int:
        async with self._translate_errors("add_members"):
            self.db.add_all(list(members))
            await self.db.commit()
        return len(members)

    # --- Transfers ---

    async def _load_transfer(self, transfer_id: uuid.UUID) -> Optional[MemberTransfer]:
        result = await self.db.execute(
            select(MemberTransfer)
            .where(MemberTransfer.id == transfer_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def add_transfer(self, transfer: MemberTransfer) -> MemberTransfer:
        await self._save(transfer, "add_transfer")
        async with self._translate_errors("add_transfer"):
            return await self._load_transfer(transfer.id)

    async def get_transfer(self, transfer_id: uuid.UUID) -> Optional[MemberTransfer]:
        async with self._translate_errors("get_transfer"):
            return await self._load_transfer(transfer_id)

    async def list_transfers(
        self,
        *,
        to_branch_id: Optional[uuid.UUID] = None,
        member_id: Optional[str] = None,
        status: Optional[TransferStatus] = None,
        newest_first: bool = True,
    ) -> list[MemberTransfer]:
        query = select(MemberTransfer)
        if to_branch_id is not None:
            query = query.where(MemberTransfer.to_branch_id == to_branch_id)
        if member_id is not None:
            query = query.where(MemberTransfer.member_id == member_id)
        if status is not None:
            query = query.where(MemberTransfer.status == status)
        order = (
            MemberTransfer.created_at.desc()
            if newest_first
            else MemberTransfer.created_at.asc()
        )
        query = query.order_by(order)
        async with self._translate_errors("list_transfers"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def _migrate_member(self, transfer: MemberTransfer) -> None:
        await self.db.execute(
            update(Profile)
            .where(Profile.id == transfer.member_id)
            .values(branch_id=transfer.to_branch_id)
        )
        await self.db.execute(
            update(Member)
            .where(
                Member.profile_id == transfer.member_id,
                Member.branch_id == transfer.from_branch_id,
            )
            .values(branch_id=transfer.to_branch_id)
        )
        await self.db.execute(
            update(MinistryAssignment)
            .where(
                MinistryAssignment.profile_id == transfer.member_id,
                MinistryAssignment.branch_id == transfer.from_branch_id,
            )
            .values(branch_id=transfer.to_branch_id)
        )

    async def finalize_transfer(
        self,
        transfer_id: uuid.UUID,
        transition: TransferTransition,
        *,
        migrate: bool,
    ) -> Optional[MemberTransfer]:
        async with self._translate_errors("finalize_transfer"):
            try:
                result = await self.db.execute(
                    select(MemberTransfer)
                    .where(MemberTransfer.id == transfer_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                transfer = result.scalar_one_or_none()
                if transfer is None:
                    await self.db.rollback()
                    return None

                transition(transfer)
                if migrate:
                    await self._migrate_member(transfer)
                await self.db.commit()
            except SQLAlchemyError:
                raise
            except Exception:
                await self.db.rollback()
                raise

            return await self._load_transfer(transfer_id)

    # --- Audit ---

    async def add_audit_entry(self, entry: AuditLog) -> AuditLog:
        return await self._save(entry, "add_audit_entry")

    async def query_audit_entries(
        self, filters: AuditQueryFilters, *, page: int, page_size: int
    ) -> tuple[list[AuditLog], int]:
        query = select(AuditLog)
        if filters.actor_id:
            query = query.where(AuditLog.user_id == filters.actor_id)
        if filters.action:
            query = query.where(AuditLog.action == filters.action)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.where(
                or_(
                    cast(AuditLog.action, String).ilike(pattern),
                    cast(AuditLog.details, String).ilike(pattern),
                )
            )

        async with self._translate_errors("query_audit_entries"):
            total = (
                await self.db.execute(
                    select(func.count()).select_from(query.subquery())
                )
            ).scalar_one()
            result = await self.db.execute(
                query.order_by(AuditLog.created_at.desc())
                .limit(page_size)
                .offset((page - 1) * page_size)
            )
            return list(result.scalars().all()), int(total)

    # --- Notifications ---

    async def add_notification(self, notification: Notification) -> Notification:
        return await self._save(notification, "add_notification")

    async def list_notifications(self, user_id: str) -> list[Notification]:
        async with self._translate_errors("list_notifications"):
            result = await self.db.execute(
                select(Notification)
                .where(Notification.user_id == user_id)
                .order_by(Notification.created_at.desc())
            )
            return list(result.scalars().all())

    # --- Streams ---

    async def get_stream(self, stream_id: uuid.UUID) -> Optional[Stream]:
        async with self._translate_errors("get_stream"):
            return await self.db.get(Stream, stream_id)

    async def finalize_stream(
        self, stream_id: uuid.UUID, transition: StreamTransition
    ) -> Optional[Stream]:
        async with self._translate_errors("finalize_stream"):
            try:
                result = await self.db.execute(
                    select(Stream)
                    .where(Stream.id == stream_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                stream = result.scalar_one_or_none()
                if stream is None:
                    await self.db.rollback()
                    return None
                transition(stream)
                await self.db.commit()
            except SQLAlchemyError:
                raise
            except Exception:
                await self.db.rollback()
                raise
            await self.db.refresh(stream)
            return stream
