"""Portal service routers package."""

from services.portal_service.routers.admin import router as admin_router
from services.portal_service.routers.auth import me_router
from services.portal_service.routers.auth import router as auth_router
from services.portal_service.routers.superadmin import router as superadmin_router
from services.portal_service.routers.transfers import (
    admin_router as admin_transfers_router,
)
from services.portal_service.routers.transfers import branches_router
from services.portal_service.routers.transfers import router as transfers_router

__all__ = [
    "admin_router",
    "admin_transfers_router",
    "auth_router",
    "branches_router",
    "me_router",
    "superadmin_router",
    "transfers_router",
]
