"""Append-only audit recording and querying.

Audit is observability, not a transactional participant: ``record`` never
raises and never rolls back the operation that triggered it.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Optional, Union

from fastapi.encoders import jsonable_encoder
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger

from services.portal_service.models import AuditAction, AuditLog
from services.portal_service.repositories.base import (
    AuditQueryFilters,
    PortalRepository,
    RepositoryError,
)

logger = get_logger(__name__)


@dataclass
class AuditPage:
    items: list[AuditLog]
    total: int
    page: int
    page_size: int


class AuditRecorder:
    def __init__(self, repository: PortalRepository):
        self.repository = repository

    async def record(
        self,
        actor_id: Optional[str],
        action: Union[AuditAction, str],
        details: Optional[dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """Append an entry. Failures are logged and swallowed."""
        try:
            entry = AuditLog(
                id=uuid.uuid4(),
                user_id=actor_id,
                action=AuditAction(action),
                details=jsonable_encoder(details or {}),
                created_at=utc_now(),
            )
            return await self.repository.add_audit_entry(entry)
        except Exception as exc:
            logger.error(
                "Audit write failed",
                extra={
                    "extra_fields": {
                        "actor_id": actor_id,
                        "action": str(action),
                        "error": str(exc),
                    }
                },
            )
            return None

    async def query(
        self,
        *,
        actor_id: Optional[str] = None,
        action: Optional[AuditAction] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> AuditPage:
        """Return one page of entries, newest first."""
        settings = get_settings()
        page = max(page, 1)
        page_size = page_size or settings.AUDIT_PAGE_SIZE
        page_size = max(1, min(page_size, settings.AUDIT_MAX_PAGE_SIZE))
        filters = AuditQueryFilters(
            actor_id=actor_id,
            action=action,
            search=search.strip() if search and search.strip() else None,
        )
        try:
            items, total = await self.repository.query_audit_entries(
                filters, page=page, page_size=page_size
            )
        except RepositoryError as exc:
            logger.error(
                "Audit query failed", extra={"extra_fields": {"error": str(exc)}}
            )
            items, total = [], 0
        return AuditPage(items=items, total=total, page=page, page_size=page_size)
