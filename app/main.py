"""Cairo Backend: FastAPI application entry point.

Mounts the users resource under /api/v1 and health checks under /actuator.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.errors import register_exception_handlers
from app.middleware.rate_limit import RateLimiter, RateLimitMiddleware
from app.middleware.request_id import RequestIdFilter, RequestIdMiddleware
from app.routers import health, users

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s | %(name)s | %(levelname)s | [%(request_id)s] %(message)s",
)
for _handler in logging.getLogger().handlers:
    _handler.addFilter(RequestIdFilter())
logger = logging.getLogger("cairo")


# ═══════════════ LIFESPAN ═══════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Cairo backend starting | environment=%s", settings.environment)

    # Database (graceful degradation if unavailable)
    from app.database import close_db, init_db
    db_ok = await init_db()
    logger.info("Database: %s", "connected" if db_ok else "unavailable (continuing without)")

    # Redis (graceful degradation if unavailable)
    from app.services.cache import cache_service
    redis_ok = await cache_service.connect()
    logger.info("Redis: %s", "connected" if redis_ok else "unavailable (using in-memory fallback)")

    yield

    await cache_service.disconnect()
    await close_db()
    logger.info("Cairo backend shutting down")


# ═══════════════ APP ═══════════════

app = FastAPI(
    title="Cairo Backend API",
    description="RESTful backend with cached repositories and dual authentication",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/api-docs",
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


rate_limiter = RateLimiter(settings.rate_limit_max_requests, settings.rate_limit_window_seconds)

# Last added runs first: CORS → request id → rate limit → request log
app.add_middleware(
    RateLimitMiddleware, limiter=rate_limiter, trust_forwarded=settings.trust_forwarded_for,
)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_origins != ["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["x-request-id"],
)

register_exception_handlers(app)


# ═══════════════ ENDPOINTS ═══════════════

@app.get("/")
async def root():
    return {
        "message": "Cairo Backend API",
        "version": settings.app_version,
        "status": "running",
    }


app.include_router(health.router)
app.include_router(users.router)
