"""Portal service repositories package."""

from services.portal_service.repositories.base import (  # noqa: F401
    AuditQueryFilters,
    PortalRepository,
    RepositoryError,
)
from services.portal_service.repositories.sql import SqlPortalRepository  # noqa: F401

__all__ = [
    "AuditQueryFilters",
    "PortalRepository",
    "RepositoryError",
    "SqlPortalRepository",
]
