"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime. Use this for every stored timestamp."""
    return datetime.now(timezone.utc)
