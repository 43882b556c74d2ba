"""
Main entry point for the passage speaking practice server
"""

import logging
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from speaking_practice.api.main import create_app
from speaking_practice.config import get_settings
from speaking_practice.services.supabase_client import SupabaseService


# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    settings = get_settings()
    logger.info("Starting speaking practice server...",
               realtime_model=settings.REALTIME_MODEL,
               grading_model=settings.GRADING_MODEL)

    if not settings.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set - realtime sessions and grading will fail")

    # Test database connection
    try:
        healthy = await SupabaseService().health_check()
        logger.info("Supabase connection checked", healthy=healthy)
    except Exception as e:
        logger.error("Failed to connect to Supabase", error=str(e))
        # Don't raise - allow app to start without Supabase for testing

    yield

    logger.info("Shutdown complete")


# Create the FastAPI app at module level for ASGI
app = create_app(lifespan=lifespan)


def main():
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper()))

    logger.info("Starting uvicorn server", host=settings.API_HOST, port=settings.API_PORT)
    uvicorn.run(
        "speaking_practice.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
        reload=False
    )


if __name__ == "__main__":
    main()
