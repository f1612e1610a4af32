"""
API route handlers for the Real Estate Marketplace API.
"""

from .auth import router as auth_router
from .access import router as access_router
from .properties import router as properties_router
from .listings import router as listings_router
from .media import router as media_router
from .transactions import router as transactions_router
from .payments import router as payments_router
from .subscriptions import router as subscriptions_router
from .notifications import router as notifications_router
from .inquiries import router as inquiries_router
from .recommendations import router as recommendations_router
from .monitoring import router as monitoring_router

__all__ = [
    "auth_router",
    "access_router",
    "properties_router",
    "listings_router",
    "media_router",
    "transactions_router",
    "payments_router",
    "subscriptions_router",
    "notifications_router",
    "inquiries_router",
    "recommendations_router",
    "monitoring_router",
]
