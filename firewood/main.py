# firewood/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from firewood.core.config import get_settings
from firewood.database import create_db_and_tables, dispose_engine

# Import models so SQLModel metadata is populated before create_all()
from firewood.models import product as _product_models  # noqa: F401
from firewood.models import order as _order_models  # noqa: F401
from firewood.models import husbandry as _husbandry_models  # noqa: F401


# Routers
from firewood.routers.products import router as products_router
from firewood.routers.orders import router as orders_router
from firewood.routers.admin_orders import router as admin_orders_router
from firewood.routers.payments import router as payments_router
from firewood.routers.public import router as public_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.

    Shutdown:
      - Release pooled connections.
    """
    logger.info("Startup: connecting to database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise

    if not settings.ADMIN_USER or not settings.ADMIN_PASS:
        logger.warning("ADMIN_USER/ADMIN_PASS not set: admin endpoints will refuse every request")
    if not settings.MOLLIE_API_KEY:
        logger.warning("MOLLIE_API_KEY not set: card checkout is unavailable")

    yield
    dispose_engine()


app = FastAPI(
    title=settings.PROJECT_NAME or "Verrington Firewood API",
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(products_router, prefix=settings.API_V1_STR)
app.include_router(orders_router, prefix=settings.API_V1_STR)
app.include_router(admin_orders_router, prefix=settings.API_V1_STR)
app.include_router(payments_router, prefix=settings.API_V1_STR)
app.include_router(public_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "verrington-firewood"}
