"""FastAPI application for the Portal Service."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware

from services.portal_service.routers import (
    admin_router,
    admin_transfers_router,
    auth_router,
    branches_router,
    me_router,
    superadmin_router,
    transfers_router,
)

API_PREFIX = "/api/v1"


def create_app() -> FastAPI:
    """Create and configure the Portal Service FastAPI app."""
    settings = get_settings()
    app = FastAPI(
        title="FaithConnect Portal Service",
        version="0.1.0",
        description="Multi-branch church portal: sessions, roles, transfers and audit.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Structured logging + request tracing
    add_observability_middleware(app)

    # Guard denials become redirects
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "portal"}

    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(me_router, prefix=API_PREFIX)
    app.include_router(branches_router, prefix=API_PREFIX)
    app.include_router(transfers_router, prefix=API_PREFIX)
    app.include_router(admin_transfers_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)
    app.include_router(superadmin_router, prefix=API_PREFIX)

    return app


app = create_app()
