from app.routers.auth import router as auth_router
from app.routers.dashboard import router as dashboard_router
from app.routers.health import router as health_router
from app.routers.products import router as products_router
from app.routers.service_types import router as service_types_router
from app.routers.stores import router as stores_router
from app.routers.usages import router as usages_router

__all__ = [
    "auth_router",
    "dashboard_router",
    "health_router",
    "products_router",
    "service_types_router",
    "stores_router",
    "usages_router",
]
