import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from commentguard.core.cache import close_cache_client
from commentguard.core.config import get_settings
from commentguard.core.exceptions import register_exception_handlers
from commentguard.core.logging_config import setup_logging
from commentguard.core.middleware import CorrelationIDMiddleware
from commentguard.core.posthog import init_posthog, shutdown_posthog
from commentguard.core.rate_limit import limiter, rate_limit_exceeded_handler
from commentguard.routers import health, moderation, suspicious_accounts

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    logger.info("Starting %s...", settings.app_name)
    init_posthog()
    yield
    logger.info("Shutting down %s...", settings.app_name)
    shutdown_posthog()
    close_cache_client()
    logger.info("Redis connection closed")


app = FastAPI(
    title=settings.app_name,
    description="Real-time comment moderation API for Instagram and Facebook accounts",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Correlation IDs (runs after CORS, before routes)
app.add_middleware(CorrelationIDMiddleware)

# Rate limiting (slowapi + Redis)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Global exception handlers (domain exceptions → HTTP responses)
register_exception_handlers(app)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(
    moderation.router, prefix=f"{settings.api_prefix}/moderation", tags=["Moderation"]
)
app.include_router(
    suspicious_accounts.router,
    prefix=f"{settings.api_prefix}/suspicious-accounts",
    tags=["Suspicious Accounts"],
)
