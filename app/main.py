import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import Settings, get_settings
from app.core.logging import setup_logging
from app.database import Base, engine
from app.models import import_all_models
from app.routers import (
    auth_router,
    dashboard_router,
    health_router,
    products_router,
    service_types_router,
    stores_router,
    usages_router,
)

setup_logging()
settings: Settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    import_all_models()
    Base.metadata.create_all(bind=engine)
    logger.info("Schema ready (%s)", settings.ENVIRONMENT)
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(stores_router)
app.include_router(products_router)
app.include_router(service_types_router)
app.include_router(usages_router)
app.include_router(dashboard_router)


__all__ = ["app"]
