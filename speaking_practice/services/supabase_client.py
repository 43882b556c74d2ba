"""
Supabase client service for database operations
"""

import asyncio
from functools import lru_cache
from typing import Callable, Optional

from supabase import create_client, Client
import structlog

from speaking_practice.config import get_settings

logger = structlog.get_logger(__name__)


@lru_cache()
def get_supabase_client() -> Client:
    """
    Create and return a Supabase client instance.
    Uses LRU cache to ensure singleton behavior.
    """
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY environment variables are required")
    try:
        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
        logger.info("Supabase client created successfully")
        return client
    except Exception as e:
        logger.error("Failed to create Supabase client", error=str(e))
        raise


class SupabaseService:
    """Service class for Supabase operations with error handling and logging"""

    def __init__(self, client: Optional[Client] = None):
        self.settings = get_settings()
        self.client = client if client is not None else get_supabase_client()

    async def health_check(self) -> bool:
        """
        Check if Supabase connection is healthy
        """
        try:
            await self.execute_with_logging(
                "health_check",
                lambda: self.client.table(self.settings.PASSAGES_TABLE).select("id").limit(1).execute()
            )
            return True
        except Exception as e:
            logger.error("Supabase health check failed", error=str(e))
            return False

    async def execute_with_logging(self, operation_name: str, query_func: Callable):
        """
        Execute a Supabase operation off the event loop with logging and error handling
        """
        try:
            logger.debug("Executing Supabase operation", operation=operation_name)
            result = await asyncio.to_thread(query_func)
            logger.debug("Supabase operation completed",
                        operation=operation_name,
                        result_count=len(result.data) if getattr(result, 'data', None) else 0)
            return result
        except Exception as e:
            logger.error("Supabase operation failed",
                        operation=operation_name,
                        error=str(e))
            raise
