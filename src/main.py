"""
FastAPI Production Application

Main entry point for the Storefront API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
import structlog
from redis.exceptions import RedisError

from src.config import get_settings
from src.config.logging import configure_logging
from src.database.connection import init_database, close_database
from src.serving.cache import init_redis, close_redis
from src.serving.api.main import create_api_app

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()
    settings = get_settings()

    logger.info("Starting Storefront API", environment=settings.app_env, version=settings.version)

    await init_database()

    # The cache is optional; requests fall through to the database without it
    try:
        await init_redis()
    except (RedisError, OSError) as e:
        logger.warning("Redis unavailable, continuing without cache", error=str(e))

    yield

    logger.info("Shutting down")
    await close_redis()
    await close_database()


app = create_api_app(lifespan=lifespan)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
