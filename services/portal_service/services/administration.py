"""Branch, user and member-record administration plus profile self-service."""

import uuid
from typing import Any, Mapping, Optional, Sequence

from fastapi import HTTPException, status
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger

from services.portal_service.models import (
    AppRole,
    AuditAction,
    Branch,
    Member,
    MemberStatus,
    Notification,
    Profile,
)
from services.portal_service.repositories.base import PortalRepository, RepositoryError
from services.portal_service.services.audit import AuditRecorder
from services.portal_service.services.identity import AuthContext, IdentityProvider

logger = get_logger(__name__)

DEFAULT_DISTRICT = "default"
REQUIRED_IMPORT_FIELDS = ("first_name", "last_name", "email")


def _unavailable(exc: RepositoryError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
    )


def _require_super_admin(ctx: AuthContext) -> Profile:
    if not ctx.has_session or ctx.profile is None or not ctx.is_super_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super admin privileges required",
        )
    return ctx.profile


def _require_admin(ctx: AuthContext) -> Profile:
    if not ctx.has_session or ctx.profile is None or not ctx.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return ctx.profile


def _clean_row(row: Mapping[str, Any]) -> Optional[dict]:
    cleaned = {
        key: (str(value).strip() if value is not None else None)
        for key, value in row.items()
    }
    if any(not cleaned.get(key) for key in REQUIRED_IMPORT_FIELDS):
        return None
    return cleaned


class Administration:
    def __init__(
        self,
        repository: PortalRepository,
        audit: AuditRecorder,
        identity_provider: Optional[IdentityProvider] = None,
    ):
        self.repository = repository
        self.audit = audit
        self.identity_provider = identity_provider

    # --- Branches ---

    async def list_branches(
        self,
        search: Optional[str] = None,
        exclude_branch_id: Optional[uuid.UUID] = None,
    ) -> list[Branch]:
        try:
            return await self.repository.list_branches(
                search=search.strip() if search else None,
                exclude_branch_id=exclude_branch_id,
            )
        except RepositoryError as exc:
            logger.error(
                "Could not list branches", extra={"extra_fields": {"error": str(exc)}}
            )
            return []

    async def create_branch(
        self,
        ctx: AuthContext,
        name: str,
        address: Optional[str] = None,
        district_id: Optional[str] = None,
    ) -> Branch:
        actor = _require_super_admin(ctx)
        name = (name or "").strip()
        if not name:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Branch name is required",
            )

        now = utc_now()
        branch = Branch(
            id=uuid.uuid4(),
            name=name,
            address=(address or "").strip() or None,
            district_id=district_id or DEFAULT_DISTRICT,
            created_at=now,
            updated_at=now,
        )
        try:
            branch = await self.repository.add_branch(branch)
        except RepositoryError as exc:
            raise _unavailable(exc) from exc

        await self.audit.record(
            actor.id,
            AuditAction.CREATED_BRANCH,
            {"branch_id": branch.id, "branch_name": branch.name},
        )
        return branch

    async def update_branch(
        self,
        ctx: AuthContext,
        branch_id: uuid.UUID,
        *,
        name: Optional[str] = None,
        address: Optional[str] = None,
        district_id: Optional[str] = None,
    ) -> Branch:
        actor = _require_super_admin(ctx)
        fields: dict[str, Any] = {}
        if name is not None:
            name = name.strip()
            if not name:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Branch name is required",
                )
            fields["name"] = name
        if address is not None:
            fields["address"] = address.strip() or None
        if district_id is not None:
            fields["district_id"] = district_id

        try:
            branch = await self.repository.update_branch(branch_id, **fields)
        except RepositoryError as exc:
            raise _unavailable(exc) from exc
        if branch is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Branch not found"
            )

        await self.audit.record(
            actor.id,
            AuditAction.UPDATED_BRANCH,
            {"branch_id": branch.id, "branch_name": branch.name},
        )
        return branch

    # --- Users ---

    async def list_users(self, search: Optional[str] = None) -> list[Profile]:
        try:
            return await self.repository.list_profiles(
                search=search.strip() if search else None
            )
        except RepositoryError as exc:
            logger.error(
                "Could not list users", extra={"extra_fields": {"error": str(exc)}}
            )
            return []

    async def _ensure_branch(self, branch_id: Optional[uuid.UUID]) -> None:
        if branch_id is None:
            return
        try:
            branch = await self.repository.get_branch(branch_id)
        except RepositoryError as exc:
            raise _unavailable(exc) from exc
        if branch is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Branch does not exist",
            )

    async def update_user(
        self,
        ctx: AuthContext,
        user_id: str,
        *,
        primary_role: Optional[AppRole] = None,
        branch_id: Optional[uuid.UUID] = None,
    ) -> Profile:
        """Reassign a user's role and/or branch."""
        actor = _require_super_admin(ctx)
        await self._ensure_branch(branch_id)

        fields: dict[str, Any] = {}
        if primary_role is not None:
            fields["primary_role"] = AppRole(primary_role)
        if branch_id is not None:
            fields["branch_id"] = branch_id

        try:
            profile = await self.repository.update_profile(user_id, **fields)
        except RepositoryError as exc:
            raise _unavailable(exc) from exc
        if profile is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )

        await self.audit.record(
            actor.id,
            AuditAction.UPDATED_USER_ROLE,
            {
                "target_user": profile.email,
                "new_role": AppRole(profile.primary_role).value,
                "new_branch": profile.branch_id,
            },
        )
        return profile

    async def create_managed_user(
        self,
        ctx: AuthContext,
        *,
        email: str,
        full_name: str,
        role: AppRole = AppRole.MEMBER,
        branch_id: Optional[uuid.UUID] = None,
        password: Optional[str] = None,
    ) -> Profile:
        """Provision an account with the identity provider and persist its profile."""
        actor = _require_super_admin(ctx)
        if self.identity_provider is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Identity provider is not configured",
            )
        await self._ensure_branch(branch_id)

        user_id = await self.identity_provider.create_user(
            email=email,
            password=password or get_settings().DEFAULT_MANAGED_USER_PASSWORD,
            full_name=full_name,
            role=role,
            branch_id=branch_id,
        )

        try:
            existing = await self.repository.get_profile(user_id)
            if existing is not None:
                profile = await self.repository.update_profile(
                    user_id,
                    email=email,
                    full_name=full_name,
                    primary_role=role,
                    branch_id=branch_id,
                )
            else:
                now = utc_now()
                profile = await self.repository.add_profile(
                    Profile(
                        id=user_id,
                        email=email,
                        full_name=full_name,
                        primary_role=role,
                        branch_id=branch_id,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except RepositoryError as exc:
            raise _unavailable(exc) from exc

        logger.info(
            "Managed user created",
            extra={"extra_fields": {"user_id": user_id, "role": role.value}},
        )
        await self.audit.record(
            actor.id,
            AuditAction.CREATED_USER,
            {
                "target_user": email,
                "role": role.value,
                "branch_id": branch_id,
            },
        )
        return profile

    # --- Church member records ---

    async def import_members(
        self,
        ctx: AuthContext,
        rows: Sequence[Mapping[str, Any]],
        file_name: Optional[str] = None,
    ) -> int:
        """Insert member records into the acting admin's branch."""
        actor = _require_admin(ctx)
        if actor.branch_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You must be assigned to a branch to import members.",
            )

        valid_rows = [row for row in (_clean_row(r) for r in rows) if row is not None]
        if not valid_rows:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No valid member records found.",
            )

        now = utc_now()
        members = [
            Member(
                id=uuid.uuid4(),
                branch_id=actor.branch_id,
                first_name=row["first_name"],
                last_name=row["last_name"],
                email=row["email"],
                phone=row.get("phone") or None,
                status=MemberStatus.ACTIVE,
                created_at=now,
            )
            for row in valid_rows
        ]
        try:
            count = await self.repository.add_members(members)
        except RepositoryError as exc:
            raise _unavailable(exc) from exc

        skipped = len(rows) - len(valid_rows)
        logger.info(
            "Members imported",
            extra={
                "extra_fields": {
                    "branch_id": str(actor.branch_id),
                    "count": count,
                    "skipped": skipped,
                }
            },
        )
        await self.audit.record(
            actor.id,
            AuditAction.IMPORT_MEMBERS,
            {"count": count, "file": file_name},
        )
        return count


class SelfService:
    """Operations any authenticated user performs on their own records."""

    def __init__(self, repository: PortalRepository):
        self.repository = repository

    async def update_my_profile(
        self,
        ctx: AuthContext,
        *,
        full_name: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> Profile:
        if not ctx.has_session or ctx.profile is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
            )
        fields: dict[str, Any] = {}
        if full_name is not None:
            fields["full_name"] = full_name.strip() or None
        if avatar_url is not None:
            fields["avatar_url"] = avatar_url.strip() or None

        try:
            profile = await self.repository.update_profile(ctx.profile.id, **fields)
        except RepositoryError as exc:
            raise _unavailable(exc) from exc
        if profile is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found"
            )
        return profile

    async def list_notifications(self, ctx: AuthContext) -> list[Notification]:
        if not ctx.has_session or ctx.profile is None:
            return []
        try:
            return await self.repository.list_notifications(ctx.profile.id)
        except RepositoryError as exc:
            logger.error(
                "Could not list notifications",
                extra={"extra_fields": {"error": str(exc)}},
            )
            return []
