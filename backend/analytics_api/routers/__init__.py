# API routers
from .vendor_analytics import router as vendor_analytics_router
from .stats import router as stats_router
from .chat import router as chat_router

__all__ = [
    "vendor_analytics_router",
    "stats_router",
    "chat_router",
]
