"""
Standalone transcript grading endpoint
"""
from fastapi import APIRouter, Depends, HTTPException
import structlog

from speaking_practice.api.deps import get_grading_service
from speaking_practice.api.schemas import GradeRequest, GradeResponse
from speaking_practice.services.grading_service import GradingService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/grade", response_model=GradeResponse)
async def grade_transcript(
    data: GradeRequest,
    grader: GradingService = Depends(get_grading_service)
):
    """Grade a transcript against a passage and its questions"""
    if not data.transcript or not data.passage_content:
        raise HTTPException(status_code=400, detail="Transcript and passage content are required")

    question_texts = [q.question_text for q in data.questions or []]
    evaluation = await grader.grade(data.transcript, data.passage_content, question_texts)
    return GradeResponse(success=True, evaluation=evaluation.model_dump(by_alias=True))
