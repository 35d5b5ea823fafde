# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from app.core.config import get_settings
from app.core.realtime import RealtimeSubscription
from app.core.supabase_client import products_tags_channel
from app.database import create_db_and_tables
from app.repositories.software_repo import SoftwareRepository
from app.services.catalog_view import CatalogView, DatabaseCatalogSource, LegacySoftwareSource

# Import models so SQLModel metadata is populated before create_all()
from app.models import product as _product_models  # noqa: F401
from app.models import tag as _tag_models  # noqa: F401
from app.models import product_tag as _product_tag_models  # noqa: F401


# Routers
from app.routers.products import router as products_router
from app.routers.tags import router as tags_router
from app.routers.software import router as software_router
from app.routers.catalog import router as catalog_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger("uvicorn")


def build_catalog_view() -> CatalogView:
    """
    Public (guest-scoped) catalog view on the relational store, or on the
    legacy JSON file when no database is configured.
    """
    if settings.database_configured:
        source = DatabaseCatalogSource.build()
    else:
        logger.warning(f"No database configured, serving the catalog from {settings.LEGACY_DATA_PATH}")
        source = LegacySoftwareSource(
            SoftwareRepository(settings.LEGACY_DATA_PATH, writable=settings.LEGACY_DATA_WRITABLE)
        )

    return CatalogView(
        source,
        is_admin=False,
        debounce_seconds=settings.REALTIME_DEBOUNCE_SECONDS,
        focus_debounce_seconds=settings.FOCUS_DEBOUNCE_SECONDS,
        poll_interval_seconds=settings.POLL_INTERVAL_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
      - Load the catalog view and open the realtime subscription.

    Shutdown:
      - Close the view (timers, poll loop, realtime channel).
    """
    logger.info("🔄 Startup: Connecting to Supabase Postgres...")
    try:
        create_db_and_tables()
        logger.info("✅ Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"❌ Startup: DB connection FAILED: {e}")
        raise

    view = build_catalog_view()
    subscription = None
    if settings.REALTIME_ENABLED and settings.database_configured:
        subscription = RealtimeSubscription(
            products_tags_channel,
            view.notify_change,
            schema=settings.REALTIME_SCHEMA,
        )
    await view.start(subscription)
    app.state.catalog_view = view
    logger.info(f"✅ Startup: catalog loaded, {len(view.products)} products.")

    yield

    await view.close()
    logger.info("Shutdown: catalog view closed.")


app = FastAPI(
    title=settings.PROJECT_NAME or "SEO Rocket Catalog API",
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://0.0.0.0:3000",
    "http://[::1]:3000",
    "http://localhost:3001",  # optional alternate port if needed
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(products_router, prefix=settings.API_V1_STR)
app.include_router(tags_router, prefix=settings.API_V1_STR)
app.include_router(software_router, prefix=settings.API_V1_STR)
app.include_router(catalog_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "seo-rocket-catalog",
        "database": "configured" if settings.database_configured else "absent",
    }
