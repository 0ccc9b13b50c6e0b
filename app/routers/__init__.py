from app.routers.auth import router as auth_router
from app.routers.customers import router as customers_router
from app.routers.damaged_products import inventory_router as damage_inventory_router
from app.routers.damaged_products import router as damaged_products_router
from app.routers.dashboard import router as dashboard_router
from app.routers.health import router as health_router
from app.routers.notifications import router as notifications_router
from app.routers.products import router as products_router
from app.routers.variants import router as variants_router

__all__ = [
    "auth_router",
    "customers_router",
    "damage_inventory_router",
    "damaged_products_router",
    "dashboard_router",
    "health_router",
    "notifications_router",
    "products_router",
    "variants_router",
]
