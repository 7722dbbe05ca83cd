"""Portal Service models package.

Re-exports all models and enums so that:
  - ``from services.portal_service.models import Profile`` works
  - Alembic env.py sees every table through a single import

Model definitions are split across:
  - models/core.py    : Profile, Branch, Member, MinistryAssignment
  - models/transfer.py: MemberTransfer
  - models/activity.py: AuditLog, Notification, Stream
"""

from services.portal_service.models.activity import (  # noqa: F401
    AuditLog,
    Notification,
    Stream,
)
from services.portal_service.models.core import (  # noqa: F401
    Branch,
    Member,
    MinistryAssignment,
    Profile,
)
from services.portal_service.models.enums import (  # noqa: F401
    AppRole,
    AssignmentKind,
    AuditAction,
    MemberStatus,
    StreamPrivacy,
    StreamStatus,
    TransferStatus,
)
from services.portal_service.models.transfer import MemberTransfer  # noqa: F401

__all__ = [
    "AppRole",
    "AssignmentKind",
    "AuditAction",
    "AuditLog",
    "Branch",
    "Member",
    "MemberStatus",
    "MemberTransfer",
    "MinistryAssignment",
    "Notification",
    "Profile",
    "Stream",
    "StreamPrivacy",
    "StreamStatus",
    "TransferStatus",
]
