"""Enum definitions for portal service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class AppRole(str, enum.Enum):
    """Primary role of a profile. Exactly one per profile."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    DISTRICT_ADMIN = "district_admin"
    PASTOR = "pastor"
    LEADER = "leader"
    WORKER = "worker"
    MEMBER = "member"


class TransferStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MemberStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    TRANSFERRED = "transferred"


class AssignmentKind(str, enum.Enum):
    MINISTRY = "ministry"
    DEPARTMENT = "department"
    GROUP = "group"


class AuditAction(str, enum.Enum):
    """Closed vocabulary of privileged actions recorded in the audit log."""

    IMPORT_MEMBERS = "import_members"
    START_STREAM = "start_stream"
    END_STREAM = "end_stream"
    ARCHIVE_STREAM = "archive_stream"
    UPDATED_USER_ROLE = "updated_user_role"
    CREATED_USER = "created_user"
    CREATED_BRANCH = "created_branch"
    UPDATED_BRANCH = "updated_branch"
    SUBMIT_TRANSFER = "submit_transfer"
    APPROVE_TRANSFER = "approve_transfer"
    REJECT_TRANSFER = "reject_transfer"


class StreamStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    ENDED = "ended"
    ARCHIVED = "archived"


class StreamPrivacy(str, enum.Enum):
    PUBLIC = "public"
    MEMBERS_ONLY = "members_only"
    PRIVATE = "private"
