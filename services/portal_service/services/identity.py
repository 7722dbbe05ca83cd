"""Session resolution and identity provider operations.

``SessionResolver`` turns an authenticated user into an ``AuthContext``
holding the profile and its derived role flags. Resolution is total once a
session exists: a missing profile row, a failing store or a slow store all
end in a usable fallback profile rather than an error.

``IdentityProvider`` wraps the Supabase Auth API for sign-in, sign-up,
sign-out, password reset and admin provisioning.
"""

import asyncio
import enum
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from fastapi import HTTPException, status
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger

from services.portal_service.models import AppRole, Profile
from services.portal_service.repositories.base import PortalRepository, RepositoryError
from services.portal_service.services.roles import RoleFlags, coerce_role, evaluate_roles

logger = get_logger(__name__)


class SessionStatus(str, enum.Enum):
    LOADING = "loading"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


@dataclass
class AuthContext:
    """Explicit authorization context handed to the guard and the services."""

    status: SessionStatus
    user: Optional[AuthUser] = None
    profile: Optional[Profile] = None
    profile_is_fallback: bool = False
    flags: RoleFlags = field(init=False)

    def __post_init__(self):
        self.flags = evaluate_roles(self.profile)

    @classmethod
    def loading(cls) -> "AuthContext":
        return cls(status=SessionStatus.LOADING)

    @classmethod
    def anonymous(cls) -> "AuthContext":
        return cls(status=SessionStatus.ANONYMOUS)

    @property
    def has_session(self) -> bool:
        return self.status == SessionStatus.AUTHENTICATED and self.user is not None

    @property
    def is_admin(self) -> bool:
        return self.flags.is_admin

    @property
    def is_super_admin(self) -> bool:
        return self.flags.is_super_admin


def _parse_branch_hint(value: Any) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def build_fallback_profile(user: AuthUser) -> Profile:
    """
    Synthesize a profile from session metadata.

    Name and branch hints come from the signup metadata. The role hint is only
    honoured from ``app_metadata``, which end users cannot write; anything
    else defaults to member.
    """
    user_metadata = user.user_metadata or {}
    app_metadata = user.app_metadata or {}
    now = utc_now()
    return Profile(
        id=user.user_id,
        email=user.email or "",
        full_name=user_metadata.get("full_name") or None,
        primary_role=coerce_role(
            app_metadata.get("primary_role") or app_metadata.get("role")
        ),
        branch_id=_parse_branch_hint(
            user_metadata.get("branch_id") or app_metadata.get("branch_id")
        ),
        created_at=now,
        updated_at=now,
    )


class SessionResolver:
    def __init__(self, repository: PortalRepository, timeout: Optional[float] = None):
        self.repository = repository
        self.timeout = (
            timeout
            if timeout is not None
            else get_settings().SESSION_RESOLVE_TIMEOUT_SECONDS
        )

    async def resolve(self, user: Optional[AuthUser]) -> AuthContext:
        """Resolve (session) -> profile. No session resolves to an anonymous context."""
        if user is None:
            return AuthContext.anonymous()

        try:
            profile = await asyncio.wait_for(
                self.repository.get_profile(user.user_id), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error(
                "Profile lookup timed out; using fallback profile",
                extra={"extra_fields": {"user_id": user.user_id, "timeout": self.timeout}},
            )
            return self._fallback(user)
        except RepositoryError as exc:
            logger.error(
                "Profile lookup failed; using fallback profile",
                extra={"extra_fields": {"user_id": user.user_id, "error": str(exc)}},
            )
            return self._fallback(user)

        if profile is not None:
            return AuthContext(
                status=SessionStatus.AUTHENTICATED, user=user, profile=profile
            )

        logger.warning(
            "No profile found; creating fallback profile",
            extra={"extra_fields": {"user_id": user.user_id}},
        )
        fallback = build_fallback_profile(user)
        try:
            fallback = await asyncio.wait_for(
                self.repository.add_profile(fallback), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error(
                "Persisting fallback profile timed out",
                extra={"extra_fields": {"user_id": user.user_id, "timeout": self.timeout}},
            )
        except RepositoryError as exc:
            logger.error(
                "Could not persist fallback profile",
                extra={"extra_fields": {"user_id": user.user_id, "error": str(exc)}},
            )
        return AuthContext(
            status=SessionStatus.AUTHENTICATED,
            user=user,
            profile=fallback,
            profile_is_fallback=True,
        )

    def _fallback(self, user: AuthUser) -> AuthContext:
        return AuthContext(
            status=SessionStatus.AUTHENTICATED,
            user=user,
            profile=build_fallback_profile(user),
            profile_is_fallback=True,
        )


def _provider_error(exc: Exception, default: str) -> HTTPException:
    message = str(exc) or default
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


class IdentityProvider:
    """Thin async wrapper over the Supabase Auth client."""

    def __init__(self, client, admin_client):
        self.client = client
        self.admin_client = admin_client

    async def sign_in(self, email: str, password: str) -> dict:
        try:
            response = await asyncio.to_thread(
                self.client.auth.sign_in_with_password,
                {"email": email, "password": password},
            )
        except Exception as exc:
            logger.info(
                "Sign-in rejected by identity provider",
                extra={"extra_fields": {"email": email, "error": str(exc)}},
            )
            raise _provider_error(exc, "Invalid login credentials") from exc

        session = getattr(response, "session", None)
        user = getattr(response, "user", None)
        return {
            "user_id": getattr(user, "id", None),
            "access_token": getattr(session, "access_token", None),
            "refresh_token": getattr(session, "refresh_token", None),
            "expires_in": getattr(session, "expires_in", None),
        }

    async def sign_up(
        self, email: str, password: str, full_name: Optional[str] = None
    ) -> dict:
        settings = get_settings()
        credentials = {
            "email": email,
            "password": password,
            "options": {
                "data": {"full_name": full_name or ""},
                "email_redirect_to": f"{settings.FRONTEND_URL.rstrip('/')}/auth",
            },
        }
        try:
            response = await asyncio.to_thread(self.client.auth.sign_up, credentials)
        except Exception as exc:
            raise _provider_error(exc, "Sign-up failed") from exc

        session = getattr(response, "session", None)
        user = getattr(response, "user", None)
        logger.info("User signed up", extra={"extra_fields": {"email": email}})
        return {
            "user_id": getattr(user, "id", None),
            "access_token": getattr(session, "access_token", None),
            # No session means the provider wants the email confirmed first
            "confirmation_required": session is None,
        }

    async def sign_out(self, access_token: str) -> None:
        try:
            await asyncio.to_thread(self.admin_client.auth.admin.sign_out, access_token)
        except Exception as exc:
            raise _provider_error(exc, "Sign-out failed") from exc

    async def send_password_reset(self, email: str) -> None:
        settings = get_settings()
        try:
            await asyncio.to_thread(
                self.client.auth.reset_password_for_email,
                email,
                {"redirect_to": f"{settings.FRONTEND_URL.rstrip('/')}/auth?mode=reset"},
            )
        except Exception as exc:
            raise _provider_error(exc, "Could not send password reset") from exc

    async def create_user(
        self,
        *,
        email: str,
        password: str,
        full_name: str,
        role: AppRole,
        branch_id: Optional[uuid.UUID],
    ) -> str:
        """Provision a confirmed account and return its identity id."""
        attributes = {
            "email": email,
            "password": password,
            "email_confirm": True,
            "user_metadata": {
                "full_name": full_name,
                "branch_id": str(branch_id) if branch_id else None,
            },
            "app_metadata": {"primary_role": role.value},
        }
        try:
            response = await asyncio.to_thread(
                self.admin_client.auth.admin.create_user, attributes
            )
        except Exception as exc:
            raise _provider_error(exc, "Failed to create account") from exc

        user = getattr(response, "user", None)
        user_id = getattr(user, "id", None)
        if not user_id:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Identity provider did not return a user id",
            )
        return str(user_id)
