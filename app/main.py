import logging
import secrets

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from app.config import Settings, get_settings
from app.core.constants import STATIC_DIR
from app.core.errors import InventoryError
from app.core.logging import setup_logging
from app.database import Base, engine, ensure_sqlite_schema
from app.models import import_all_models
from app.routers import (
    auth_router,
    customers_router,
    damage_inventory_router,
    damaged_products_router,
    dashboard_router,
    health_router,
    notifications_router,
    products_router,
    variants_router,
)

setup_logging()
settings: Settings = get_settings()
logger = logging.getLogger(__name__)

import_all_models()
Base.metadata.create_all(bind=engine)
ensure_sqlite_schema()

STATIC_DIR.mkdir(parents=True, exist_ok=True)

app = FastAPI(title=settings.APP_NAME)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.DASHBOARD_SESSION_SECRET or settings.JWT_SECRET or secrets.token_urlsafe(32),
    session_cookie=settings.DASHBOARD_SESSION_COOKIE,
    same_site="lax",
    https_only=settings.ENVIRONMENT.lower() != "local",
)
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


@app.exception_handler(InventoryError)
async def inventory_error_handler(_request: Request, exc: InventoryError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(health_router)
app.include_router(auth_router)
app.include_router(dashboard_router)
app.include_router(customers_router)
app.include_router(products_router)
app.include_router(variants_router)
app.include_router(damaged_products_router)
app.include_router(damage_inventory_router)
app.include_router(notifications_router)


@app.get("/")
def root():
    return RedirectResponse(url="/docs", status_code=302)


__all__ = ["app", "root"]
