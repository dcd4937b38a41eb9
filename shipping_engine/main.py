"""
Shipping Engine
FastAPI application entry point

- Quote, shipment and configuration routes under /shipping
- Error sanitization middleware
- Health endpoint with DB ping and result cache stats
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from shipping_engine.api.deps import get_result_cache
from shipping_engine.api.routes import shipping, shipping_admin
from shipping_engine.core.config import settings
from shipping_engine.core.database import engine, get_db_session
from shipping_engine.core.error_handler import ErrorSanitizationMiddleware
from shipping_engine.core.redis_client import close_redis
from shipping_engine.migrations.shipping_tables import migrate_shipping_tables

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run table migrations if enabled; release Redis on shutdown."""
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        await migrate_shipping_tables(engine)
    else:
        logger.info("Startup migrations DISABLED via config")

    yield

    await close_redis()
    logger.info("Redis connection closed")


app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    description="Shipping zone resolution, rate quoting and fulfillment lifecycle",
    version="0.1.0",
)

app.add_middleware(ErrorSanitizationMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(shipping.router)
app.include_router(shipping_admin.router)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check with an actual DB ping.
    Returns 503 if database is unreachable.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "result_cache": get_result_cache().get_stats(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    try:
        async with get_db_session() as db:
            await db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        logger.error(f"Health check DB ping failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["database"] = "unreachable"
        return JSONResponse(status_code=503, content=health_status)

    return health_status
