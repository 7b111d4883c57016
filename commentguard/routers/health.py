import asyncio

from fastapi import APIRouter

from commentguard.core.cache import cache_ping

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "commentguard-api"}


@router.get("/health/redis")
async def redis_health_check():
    """Redis health check endpoint. Covers both the cache and the comment queue broker."""
    try:
        await asyncio.to_thread(cache_ping)
        return {"status": "healthy", "service": "redis"}
    except Exception as e:
        return {"status": "unhealthy", "service": "redis", "error": str(e)}


@router.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Welcome to CommentGuard API", "docs": "/docs"}
