"""
Services package for passage speaking practice
Contains the passage catalog, grading, and session persistence integrations
"""

from .supabase_client import get_supabase_client, SupabaseService
from .passage_service import PassageCatalog
from .grading_service import GradingService
from .session_store import SessionStore, generate_session_id

__all__ = [
    "get_supabase_client",
    "SupabaseService",
    "PassageCatalog",
    "GradingService",
    "SessionStore",
    "generate_session_id"
]
