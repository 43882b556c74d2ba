"""
Ephemeral credential issuance for realtime connections
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from google import genai
from google.genai import types

from speaking_practice.config import Settings, get_settings
from speaking_practice.domain.errors import CredentialUnavailable

logger = structlog.get_logger(__name__)


async def fetch_ephemeral_token(settings: Optional[Settings] = None) -> str:
    """
    Mint a single-use token for one Live API connection.

    The token is returned to the caller and never cached; each session
    requests its own.
    """
    settings = settings or get_settings()
    if not settings.GEMINI_API_KEY:
        logger.error("GEMINI_API_KEY is not set")
        raise CredentialUnavailable("GEMINI_API_KEY is not set")

    client = genai.Client(
        api_key=settings.GEMINI_API_KEY,
        http_options=types.HttpOptions(api_version="v1alpha"),
    )
    now = datetime.now(timezone.utc)
    config = {
        "uses": 1,
        "expire_time": now + timedelta(minutes=settings.EPHEMERAL_TOKEN_TTL_MINUTES),
        "new_session_expire_time": now + timedelta(minutes=1),
        "http_options": {"api_version": "v1alpha"},
    }

    logger.info("Requesting ephemeral token", ttl_minutes=settings.EPHEMERAL_TOKEN_TTL_MINUTES)
    try:
        token = await asyncio.to_thread(client.auth_tokens.create, config=config)
    except Exception as e:
        logger.error("Ephemeral token request failed", error=str(e))
        raise CredentialUnavailable(f"Could not obtain ephemeral token: {e}") from e

    if not token or not getattr(token, "name", None):
        logger.error("Ephemeral token response had no token")
        raise CredentialUnavailable("No ephemeral key provided by the server")

    return token.name
