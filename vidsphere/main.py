"""Vidsphere API - FastAPI application."""
import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text

from vidsphere.api.v1.api import api_router
from vidsphere.core.config import settings
from vidsphere.core.exceptions import register_exception_handlers
from vidsphere.core.logging_config import configure_logging
from vidsphere.db.session import create_all, engine
from vidsphere.realtime.bus import NotificationBus
from vidsphere.realtime.manager import ConnectionManager
from vidsphere.services.cache_service import CacheAccelerator

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database: OK")
    except Exception as e:
        logger.warning("Database connection failed: %s", e)
    if settings.DB_CREATE_ALL:
        await create_all()
        logger.info("Database tables created")

    cache = CacheAccelerator.from_settings(settings)
    if cache.enabled and not await cache.ping():
        await cache.close()
        cache = CacheAccelerator(None, settings.CACHE_TTL_SECONDS)

    connections = ConnectionManager(
        max_connections=settings.REALTIME_MAX_CONNECTIONS,
        send_timeout=settings.REALTIME_SEND_TIMEOUT_SECONDS,
    )
    fanout = aioredis.from_url(settings.REDIS_URL, decode_responses=True) if settings.REALTIME_REDIS_FANOUT else None
    bus = NotificationBus(
        connections,
        queue_size=settings.REALTIME_QUEUE_SIZE,
        fanout_client=fanout,
        fanout_channel=settings.REALTIME_REDIS_CHANNEL,
    )
    await bus.start()

    app.state.cache = cache
    app.state.connections = connections
    app.state.bus = bus
    logger.info("API: /api/v1 | Realtime: /api/v1/realtime/ws | Health: /health | Ready (DB): /ready")
    try:
        yield
    finally:
        await bus.stop()
        await cache.close()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "api": "/api/v1",
    }


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/ready")
async def ready():
    """Health check including DB - use to verify backend is fully operational."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected"}
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={"status": "error", "database": str(e)},
        )
