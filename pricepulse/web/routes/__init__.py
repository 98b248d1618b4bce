"""
Web API 路由模块
"""

from pricepulse.web.metrics import router as metrics_router
from pricepulse.web.routes.health_routes import router as health_router
from pricepulse.web.routes.price_routes import router as price_router

__all__ = ["health_router", "metrics_router", "price_router"]
