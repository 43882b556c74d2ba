"""
Session record endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
import structlog

from speaking_practice.api.deps import get_session_store
from speaking_practice.api.schemas import SessionCreateRequest, SessionResponse
from speaking_practice.domain.models import EvaluationResult, SessionRecord
from speaking_practice.services.session_store import SessionStore

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(
    data: SessionCreateRequest,
    store: SessionStore = Depends(get_session_store)
):
    """
    Store a graded session
    Returns the created record including its generated id
    """
    if not data.user_id or not data.passage_id or not data.full_transcript:
        raise HTTPException(status_code=400, detail="User ID, passage ID, and transcript are required")

    evaluation = EvaluationResult(
        comprehension_score=data.comprehension_score,
        fluency_score=data.fluency_score,
        lexical_score=data.lexical_score,
        grammatical_score=data.grammatical_score,
        pronunciation_score=data.pronunciation_score,
        responsiveness_score=data.responsiveness_score,
        overall_score=data.overall_score,
        comprehension_feedback=data.comprehension_feedback,
        fluency_feedback=data.fluency_feedback,
        lexical_feedback=data.lexical_feedback,
        grammatical_feedback=data.grammatical_feedback,
        pronunciation_feedback=data.pronunciation_feedback,
        responsiveness_feedback=data.responsiveness_feedback,
        overall_feedback=data.overall_feedback,
    )
    record = SessionRecord(
        id="",
        user_id=data.user_id,
        passage_id=data.passage_id,
        full_transcript=data.full_transcript,
        duration=data.duration,
        evaluation=evaluation,
        questions_asked=data.questions_asked,
        user_answers=data.user_answers,
        recommended_answers=data.recommended_answers,
    )

    session_id = await store.create_session(record)
    return SessionResponse(session={**record.to_row(), "id": session_id})


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store)
):
    """Get a stored session with its passage for the results view"""
    record = await store.get_session(session_id)
    return SessionResponse(session=record)
