"""
Passage catalog: read-only access to passages and their discussion questions
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog

from speaking_practice.domain.errors import CatalogUnavailable
from speaking_practice.domain.models import Passage, Question
from speaking_practice.services.supabase_client import SupabaseService

logger = structlog.get_logger(__name__)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def question_from_row(row: Dict[str, Any]) -> Question:
    return Question(
        id=str(row["id"]),
        question_text=row["question_text"],
        recommended_answer=row.get("recommended_answer") or "",
        order=int(row.get("order") or 0),
    )


def passage_from_row(row: Dict[str, Any], questions_key: str = "questions",
                     sessions_key: Optional[str] = None) -> Passage:
    """Map a passage row (with embedded questions) to the domain model"""
    questions = sorted(
        (question_from_row(q) for q in row.get(questions_key) or []),
        key=lambda q: q.order,
    )

    usage_count = None
    if sessions_key and sessions_key in row:
        embedded = row.get(sessions_key) or []
        usage_count = int(embedded[0].get("count", 0)) if embedded else 0

    return Passage(
        id=str(row["id"]),
        title=row["title"],
        content=row["content"],
        time_limit=int(row.get("time_limit") or 0),
        questions=tuple(questions),
        created_at=_parse_timestamp(row.get("created_at")),
        usage_count=usage_count,
    )


class PassageCatalog(SupabaseService):
    """Service for reading passages"""

    async def get_passage(self, passage_id: str) -> Optional[Passage]:
        """
        Get a passage with its questions ordered by `order`

        Args:
            passage_id: Passage identifier

        Returns:
            Passage if found, None otherwise
        """
        questions_table = self.settings.QUESTIONS_TABLE
        try:
            response = await self.execute_with_logging(
                "get_passage",
                lambda: self.client.table(self.settings.PASSAGES_TABLE)
                    .select(f"*, {questions_table}(*)")
                    .eq("id", passage_id)
                    .limit(1)
                    .execute()
            )
        except Exception as e:
            raise CatalogUnavailable(f"Failed to load passage {passage_id}: {e}") from e

        if not response.data:
            logger.info("Passage not found", passage_id=passage_id)
            return None

        return passage_from_row(response.data[0], questions_key=questions_table)

    async def list_passages(self) -> List[Passage]:
        """
        List passages newest first, each with ordered questions and a usage count
        """
        questions_table = self.settings.QUESTIONS_TABLE
        sessions_table = self.settings.SESSIONS_TABLE
        try:
            response = await self.execute_with_logging(
                "list_passages",
                lambda: self.client.table(self.settings.PASSAGES_TABLE)
                    .select(f"*, {questions_table}(*), {sessions_table}(count)")
                    .order("created_at", desc=True)
                    .execute()
            )
        except Exception as e:
            raise CatalogUnavailable(f"Failed to list passages: {e}") from e

        passages = [
            passage_from_row(row, questions_key=questions_table, sessions_key=sessions_table)
            for row in response.data or []
        ]
        logger.info("Passages listed", count=len(passages))
        return passages
