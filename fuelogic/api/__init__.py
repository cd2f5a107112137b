"""API routes package."""

from .routes_alerts import router as alerts_router
from .routes_configurations import router as configurations_router
from .routes_orders import router as orders_router
from .routes_sophia import router as sophia_router
from .routes_tanks import router as tanks_router
from .routes_webhooks import router as webhooks_router

__all__ = [
    "alerts_router",
    "configurations_router",
    "orders_router",
    "sophia_router",
    "tanks_router",
    "webhooks_router",
]
