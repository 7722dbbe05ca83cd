"""Branch live-stream lifecycle: scheduled -> live -> ended -> archived."""

import uuid

from fastapi import HTTPException, status
from libs.common.logging import get_logger

from services.portal_service.models import AuditAction, Stream, StreamStatus
from services.portal_service.repositories.base import PortalRepository, RepositoryError
from services.portal_service.services.audit import AuditRecorder
from services.portal_service.services.identity import AuthContext
from services.portal_service.services.roles import has_branch_scope

logger = get_logger(__name__)

STOP_BEFORE_ARCHIVE = "Stop the stream before archiving."

STREAM_TRANSITIONS: dict[StreamStatus, frozenset[StreamStatus]] = {
    StreamStatus.SCHEDULED: frozenset({StreamStatus.LIVE}),
    StreamStatus.LIVE: frozenset({StreamStatus.ENDED}),
    StreamStatus.ENDED: frozenset({StreamStatus.ARCHIVED}),
    StreamStatus.ARCHIVED: frozenset(),
}

_AUDIT_ACTIONS = {
    StreamStatus.LIVE: AuditAction.START_STREAM,
    StreamStatus.ENDED: AuditAction.END_STREAM,
    StreamStatus.ARCHIVED: AuditAction.ARCHIVE_STREAM,
}


class InvalidStreamTransitionError(Exception):
    def __init__(self, current: StreamStatus, target: StreamStatus):
        self.current = current
        self.target = target
        if current == StreamStatus.LIVE and target == StreamStatus.ARCHIVED:
            message = STOP_BEFORE_ARCHIVE
        else:
            message = f"Cannot move stream from {current.value} to {target.value}"
        super().__init__(message)


def transition_stream(stream: Stream, target: StreamStatus) -> None:
    current = StreamStatus(stream.status)
    if target not in STREAM_TRANSITIONS[current]:
        raise InvalidStreamTransitionError(current, target)
    stream.status = target


class StreamControl:
    def __init__(self, repository: PortalRepository, audit: AuditRecorder):
        self.repository = repository
        self.audit = audit

    async def start(self, ctx: AuthContext, stream_id: uuid.UUID) -> Stream:
        return await self._move(ctx, stream_id, StreamStatus.LIVE)

    async def end(self, ctx: AuthContext, stream_id: uuid.UUID) -> Stream:
        return await self._move(ctx, stream_id, StreamStatus.ENDED)

    async def archive(self, ctx: AuthContext, stream_id: uuid.UUID) -> Stream:
        return await self._move(ctx, stream_id, StreamStatus.ARCHIVED)

    async def viewer_count(self, ctx: AuthContext, stream_id: uuid.UUID) -> int:
        """Concurrent viewers of a live stream; zero in every other state."""
        try:
            stream = await self._load(ctx, stream_id)
        except RepositoryError as exc:
            logger.error(
                "Could not read viewer count",
                extra={"extra_fields": {"stream_id": str(stream_id), "error": str(exc)}},
            )
            return 0
        if StreamStatus(stream.status) != StreamStatus.LIVE:
            return 0
        return stream.viewer_count or 0

    async def _load(self, ctx: AuthContext, stream_id: uuid.UUID) -> Stream:
        if not ctx.has_session or ctx.profile is None or not ctx.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin privileges required",
            )
        stream = await self.repository.get_stream(stream_id)
        if stream is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Stream not found"
            )
        if not has_branch_scope(ctx.profile, stream.branch_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not administer this branch.",
            )
        return stream

    async def _move(
        self, ctx: AuthContext, stream_id: uuid.UUID, target: StreamStatus
    ) -> Stream:
        try:
            await self._load(ctx, stream_id)
        except RepositoryError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc

        try:
            updated = await self.repository.finalize_stream(
                stream_id, lambda s: transition_stream(s, target)
            )
        except InvalidStreamTransitionError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail=str(exc)
            ) from exc
        except RepositoryError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc
        if updated is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Stream not found"
            )

        logger.info(
            "Stream status changed",
            extra={
                "extra_fields": {
                    "stream_id": str(updated.id),
                    "status": target.value,
                }
            },
        )
        await self.audit.record(
            ctx.profile.id,
            _AUDIT_ACTIONS[target],
            {"stream_id": updated.id, "title": updated.title},
        )
        return updated
