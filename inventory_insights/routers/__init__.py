from inventory_insights.routers.alerts import router as alerts_router
from inventory_insights.routers.health import router as health_router
from inventory_insights.routers.insights import router as insights_router
from inventory_insights.routers.recipes import router as recipes_router
from inventory_insights.routers.trends import router as trends_router
from inventory_insights.routers.variance import router as variance_router

__all__ = [
    "alerts_router",
    "health_router",
    "insights_router",
    "recipes_router",
    "trends_router",
    "variance_router",
]
