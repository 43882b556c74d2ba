"""
Ephemeral credential endpoint for browser realtime clients
"""
from typing import Callable

from fastapi import APIRouter, Depends
import structlog

from speaking_practice.api.deps import get_credential_provider
from speaking_practice.api.schemas import ClientSecret, EphemeralTokenResponse

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/session", response_model=EphemeralTokenResponse)
async def issue_ephemeral_token(provider: Callable = Depends(get_credential_provider)):
    """Mint a single-use realtime token"""
    token = await provider()
    logger.info("Ephemeral token issued")
    return EphemeralTokenResponse(client_secret=ClientSecret(value=token))
