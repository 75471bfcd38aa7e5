"""
DevConnect API entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Create tables if not present
  3. Pick the real-time backend (in-process, or Redis pub/sub relay)
  4. Expose Prometheus /metrics endpoint
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from devconnect.clients.redis_client import close_redis, init_redis
from devconnect.config import settings
from devconnect.database import init_db
from devconnect.errors import DevConnectError, devconnect_error_handler
from devconnect.realtime import broadcaster as realtime
from devconnect.realtime.endpoint import router as realtime_router
from devconnect.routers import admin, comments, follows, notifications, posts, users
from devconnect.schemas import RealtimeConfig
from devconnect.telemetry import instrument_app, setup_tracing

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of the database and real-time backend."""
    logger.info("Starting DevConnect API (env=%s)", settings.environment)

    await init_db()

    if settings.realtime_backend == "redis":
        redis = await init_redis()
        realtime.set_broadcaster(realtime.RedisBroadcaster(realtime.registry, redis))
    else:
        realtime.set_broadcaster(realtime.LocalBroadcaster(realtime.registry))
    broadcaster = realtime.get_broadcaster()
    await broadcaster.start()

    logger.info("Real-time backend: %s. API ready.", settings.realtime_backend)
    yield

    logger.info("Shutting down...")
    await broadcaster.stop()
    await close_redis()


app = FastAPI(
    title="DevConnect API",
    description=(
        "Social network backend: posts with moderation, follows, likes, "
        "comments and real-time notifications."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_origin_regex=r"https://.*\.netlify\.app",
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)

app.add_exception_handler(DevConnectError, devconnect_error_handler)

# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(users.auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(posts.router, prefix="/api/posts", tags=["Posts"])
app.include_router(comments.router, prefix="/api/comments", tags=["Comments"])
app.include_router(follows.router, prefix="/api/follows", tags=["Follows"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
app.include_router(realtime_router, tags=["Realtime"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/api/config/realtime", response_model=RealtimeConfig, tags=["Realtime"])
async def realtime_config():
    return RealtimeConfig(
        ping_interval=settings.ws_ping_interval,
        ping_timeout=settings.ws_ping_timeout,
        reconnect_attempts=settings.client_reconnect_attempts,
        reconnect_delay=settings.client_reconnect_delay,
    )


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
