"""
API Routers
FastAPI route handlers for different endpoints.
"""

from .artists import router as artists_router
from .auth import router as auth_router
from .cart import router as cart_router
from .certificates import router as certificates_router
from .chat import router as chat_router
from .chat import ws_router as chat_ws_router
from .comments import router as comments_router
from .downloads import router as downloads_router
from .email import router as email_router
from .exhibitions import router as exhibitions_router
from .favorites import router as favorites_router
from .finance import router as finance_router
from .health import router as health_router
from .notifications import router as notifications_router
from .notifications import ws_router as notifications_ws_router
from .orders import router as orders_router
from .products import router as products_router
from .reports import router as reports_router
from .users import router as users_router
from .wallet import router as wallet_router
from .withdrawals import router as withdrawals_router

# Mounted under /api
api_routers = [
    auth_router,
    email_router,
    users_router,
    artists_router,
    products_router,
    cart_router,
    favorites_router,
    comments_router,
    orders_router,
    wallet_router,
    withdrawals_router,
    notifications_router,
    chat_router,
    reports_router,
    finance_router,
    certificates_router,
    downloads_router,
    exhibitions_router,
]

__all__ = [
    "api_routers",
    "health_router",
    "chat_ws_router",
    "notifications_ws_router",
]
