"""
Session store: durable records of graded practice sessions
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, List
from uuid import uuid4

import structlog

from speaking_practice.domain.errors import PersistenceFailure, SessionNotFound
from speaking_practice.domain.models import SessionRecord
from speaking_practice.services.supabase_client import SupabaseService

logger = structlog.get_logger(__name__)


def generate_session_id() -> str:
    """Millisecond timestamp plus a random suffix"""
    return f"session_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


class SessionStore(SupabaseService):
    """Service for creating and reading session records"""

    async def create_session(self, record: SessionRecord) -> str:
        """
        Store one session record, idempotent on its id

        A row already stored under the same id (an earlier attempt that
        committed after the caller stopped waiting) counts as success.

        Args:
            record: Assembled record; an id is generated when missing

        Returns:
            The stored session id

        Raises:
            PersistenceFailure: the write failed or no row exists afterwards
        """
        if not record.id:
            record.id = generate_session_id()
        if record.created_at is None:
            record.created_at = datetime.now(timezone.utc)

        row = record.to_row()
        table = self.settings.SESSIONS_TABLE
        try:
            response = await self.execute_with_logging(
                "create_session",
                lambda: self.client.table(table)
                    .upsert(row, on_conflict="id", ignore_duplicates=True)
                    .execute()
            )
            if not response.data:
                # Duplicate ignored; confirm the earlier write is readable
                response = await self.execute_with_logging(
                    "create_session_lookup",
                    lambda: self.client.table(table)
                        .select("id")
                        .eq("id", record.id)
                        .limit(1)
                        .execute()
                )
                if response.data:
                    logger.info("Session record already stored", session_id=record.id)
        except Exception as e:
            raise PersistenceFailure(f"Failed to create session: {e}") from e

        if not response.data:
            logger.error("Failed to create session in database", session_id=record.id)
            raise PersistenceFailure("Failed to create session: no row returned")

        session_id = response.data[0].get("id", record.id)
        logger.info("Session record created",
                   session_id=session_id,
                   passage_id=record.passage_id,
                   overall_score=record.evaluation.overall_score,
                   duration=record.duration)
        return session_id

    async def get_session(self, session_id: str) -> Dict[str, Any]:
        """
        Get a stored session with its passage and ordered questions

        Raises:
            SessionNotFound: no record has this id
        """
        passages_table = self.settings.PASSAGES_TABLE
        questions_table = self.settings.QUESTIONS_TABLE
        try:
            response = await self.execute_with_logging(
                "get_session",
                lambda: self.client.table(self.settings.SESSIONS_TABLE)
                    .select(f"*, {passages_table}(*, {questions_table}(*))")
                    .eq("id", session_id)
                    .limit(1)
                    .execute()
            )
        except Exception as e:
            raise PersistenceFailure(f"Failed to fetch session: {e}") from e

        if not response.data:
            raise SessionNotFound(session_id)

        record = response.data[0]
        passage = record.get(passages_table)
        if passage and passage.get(questions_table):
            passage[questions_table] = sorted(passage[questions_table], key=lambda q: q.get("order") or 0)
        return record

    async def list_recent_sessions(self, passage_id: str, limit: int = 5) -> List[Dict[str, Any]]:
        """Most recent session records for one passage"""
        try:
            response = await self.execute_with_logging(
                "list_recent_sessions",
                lambda: self.client.table(self.settings.SESSIONS_TABLE)
                    .select("*")
                    .eq("passage_id", passage_id)
                    .order("created_at", desc=True)
                    .limit(limit)
                    .execute()
            )
        except Exception as e:
            raise PersistenceFailure(f"Failed to list sessions: {e}") from e
        return response.data or []
