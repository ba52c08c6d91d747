"""API routes module."""

from metered_api.routes.account import router as account_router
from metered_api.routes.admin import router as admin_router
from metered_api.routes.credits import router as credits_router
from metered_api.routes.health import router as health_router
from metered_api.routes.items import router as items_router

__all__ = [
    "account_router",
    "admin_router",
    "credits_router",
    "health_router",
    "items_router",
]
