"""
Role hierarchy evaluation.

Pure functions with no database dependencies. Every scope decision in the
service goes through ``evaluate_roles`` so UI gating and endpoint gating can
never drift apart. Only ``admin`` and ``super_admin`` are elevated; the
district_admin, pastor, leader and worker roles exist in the enumeration but
unlock nothing here.
"""

import uuid
from dataclasses import dataclass
from typing import Optional, Union

from services.portal_service.models.enums import AppRole

ADMIN_ROLES = frozenset({AppRole.ADMIN, AppRole.SUPER_ADMIN})


@dataclass(frozen=True)
class RoleFlags:
    is_admin: bool
    is_super_admin: bool


def coerce_role(value: Union[AppRole, str, None]) -> AppRole:
    """Map a stored or hinted role to the enumeration, defaulting to member."""
    if isinstance(value, AppRole):
        return value
    if isinstance(value, str):
        try:
            return AppRole(value.strip().lower())
        except ValueError:
            return AppRole.MEMBER
    return AppRole.MEMBER


def evaluate_roles(profile) -> RoleFlags:
    """Derive capability flags from a resolved profile (or None when logged out)."""
    if profile is None:
        return RoleFlags(is_admin=False, is_super_admin=False)

    role = coerce_role(profile.primary_role)
    return RoleFlags(
        is_admin=role in ADMIN_ROLES,
        is_super_admin=role == AppRole.SUPER_ADMIN,
    )


def has_branch_scope(profile, branch_id: Optional[uuid.UUID]) -> bool:
    """
    True when the profile may administer ``branch_id``.

    Super admins hold every branch; admins hold only their assigned branch.
    """
    flags = evaluate_roles(profile)
    if flags.is_super_admin:
        return True
    if not flags.is_admin or branch_id is None:
        return False
    return profile.branch_id is not None and str(profile.branch_id) == str(branch_id)
