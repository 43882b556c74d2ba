"""
FastAPI dependency injection for services and common dependencies
"""

from functools import lru_cache
from typing import Callable

from fastapi import Depends, HTTPException, status
import structlog

from speaking_practice.config import Settings, get_settings
from speaking_practice.realtime.channel import RealtimeChannelManager
from speaking_practice.realtime.credentials import fetch_ephemeral_token
from speaking_practice.services.grading_service import GradingService
from speaking_practice.services.passage_service import PassageCatalog
from speaking_practice.services.session_store import SessionStore

logger = structlog.get_logger(__name__)


# Service Dependencies

@lru_cache()
def get_passage_catalog() -> PassageCatalog:
    """
    Create and cache passage catalog instance
    """
    try:
        return PassageCatalog()
    except Exception as e:
        logger.error("Failed to initialize passage catalog", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Passage catalog unavailable"
        )


@lru_cache()
def get_session_store() -> SessionStore:
    """
    Create and cache session store instance
    """
    try:
        return SessionStore()
    except Exception as e:
        logger.error("Failed to initialize session store", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session store unavailable"
        )


@lru_cache()
def get_grading_service() -> GradingService:
    """
    Create and cache grading service instance
    """
    return GradingService()


def get_credential_provider(settings: Settings = Depends(get_settings)) -> Callable:
    """Fresh-token provider; each call mints a new single-use token"""
    async def provide() -> str:
        return await fetch_ephemeral_token(settings)
    return provide


def get_channel_factory(settings: Settings = Depends(get_settings)) -> Callable[[], RealtimeChannelManager]:
    """Factory for one realtime channel per conversation"""
    def create() -> RealtimeChannelManager:
        return RealtimeChannelManager(settings=settings)
    return create
