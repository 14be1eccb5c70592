from contextlib import asynccontextmanager

from fastapi import FastAPI

from inventory_insights.config import Settings, get_settings
from inventory_insights.core.logging import setup_logging
from inventory_insights.database import Base, engine
from inventory_insights.models import import_all_models
from inventory_insights.routers import (
    alerts_router,
    health_router,
    insights_router,
    recipes_router,
    trends_router,
    variance_router,
)

setup_logging()
settings: Settings = get_settings()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    import_all_models()
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.include_router(health_router)
app.include_router(variance_router)
app.include_router(alerts_router)
app.include_router(insights_router)
app.include_router(trends_router)
app.include_router(recipes_router)


__all__ = ["app"]
