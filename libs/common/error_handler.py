"""Exception handlers shared by the HTTP services.

Usage:
    from libs.common.error_handler import add_exception_handlers

    app = FastAPI()
    add_exception_handlers(app)
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import RedirectResponse

from libs.common.logging import get_logger

logger = get_logger(__name__)


class RedirectRequired(Exception):
    """Raised by a dependency when the caller must be sent elsewhere instead of served."""

    def __init__(self, location: str):
        self.location = location
        super().__init__(location)


async def redirect_required_handler(request: Request, exc: RedirectRequired):
    logger.info(
        "Redirecting request",
        extra={"extra_fields": {"location": exc.location}},
    )
    return RedirectResponse(url=exc.location, status_code=status.HTTP_303_SEE_OTHER)


def add_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RedirectRequired, redirect_required_handler)
