"""
Pydantic schemas for API request and response models
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from speaking_practice.domain.models import Passage, Question


# Passage Schemas

class QuestionResponse(BaseModel):
    """Schema for a passage question"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    question_text: str = Field(..., alias="questionText")
    recommended_answer: str = Field("", alias="recommendedAnswer")
    order: int

    @classmethod
    def from_domain(cls, question: Question) -> "QuestionResponse":
        return cls(
            id=question.id,
            question_text=question.question_text,
            recommended_answer=question.recommended_answer,
            order=question.order,
        )


class PassageResponse(BaseModel):
    """Schema for passage response"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    content: str
    time_limit: int = Field(..., alias="timeLimit")
    questions: List[QuestionResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    session_count: Optional[int] = Field(None, alias="sessionCount")

    @classmethod
    def from_domain(cls, passage: Passage) -> "PassageResponse":
        return cls(
            id=passage.id,
            title=passage.title,
            content=passage.content,
            time_limit=passage.time_limit,
            questions=[QuestionResponse.from_domain(q) for q in passage.ordered_questions],
            created_at=passage.created_at,
            session_count=passage.usage_count,
        )


class PassageListResponse(BaseModel):
    passages: List[PassageResponse]


class PassageDetailResponse(BaseModel):
    passage: PassageResponse
    recent_sessions: List[Dict[str, Any]] = Field(default_factory=list, alias="recentSessions")

    model_config = ConfigDict(populate_by_name=True)


# Grading Schemas

class GradeQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    question_text: str = Field(..., alias="questionText")


class GradeRequest(BaseModel):
    """Schema for a standalone grading request"""
    model_config = ConfigDict(populate_by_name=True)

    transcript: Optional[str] = None
    passage_content: Optional[str] = Field(None, alias="passageContent")
    questions: Optional[List[GradeQuestion]] = None


class GradeResponse(BaseModel):
    success: bool = True
    evaluation: Dict[str, Any]


# Session Schemas

class SessionCreateRequest(BaseModel):
    """Schema for storing a graded session"""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    passage_id: Optional[str] = Field(None, alias="passageId")
    full_transcript: Optional[str] = Field(None, alias="fullTranscript")
    duration: int = Field(0, ge=0)

    comprehension_score: int = Field(..., alias="comprehensionScore", ge=0, le=100)
    fluency_score: int = Field(..., alias="fluencyScore", ge=0, le=100)
    lexical_score: int = Field(..., alias="lexicalScore", ge=0, le=100)
    grammatical_score: int = Field(..., alias="grammaticalScore", ge=0, le=100)
    pronunciation_score: int = Field(..., alias="pronunciationScore", ge=0, le=100)
    responsiveness_score: int = Field(..., alias="responsivenessScore", ge=0, le=100)
    overall_score: int = Field(..., alias="overallScore", ge=0, le=100)

    comprehension_feedback: str = Field("", alias="comprehensionFeedback")
    fluency_feedback: str = Field("", alias="fluencyFeedback")
    lexical_feedback: str = Field("", alias="lexicalFeedback")
    grammatical_feedback: str = Field("", alias="grammaticalFeedback")
    pronunciation_feedback: str = Field("", alias="pronunciationFeedback")
    responsiveness_feedback: str = Field("", alias="responsivenessFeedback")
    overall_feedback: str = Field("", alias="overallFeedback")

    questions_asked: str = Field("", alias="questionsAsked")
    user_answers: str = Field("", alias="userAnswers")
    recommended_answers: str = Field("", alias="recommendedAnswers")


class SessionResponse(BaseModel):
    session: Dict[str, Any]


# Realtime Schemas

class ClientSecret(BaseModel):
    value: str


class EphemeralTokenResponse(BaseModel):
    client_secret: ClientSecret


# Health & Errors

class HealthResponse(BaseModel):
    """Schema for health check response"""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    services: Dict[str, str] = Field(default_factory=dict, description="Dependent service status")
    version: Optional[str] = Field(None, description="API version")


class ErrorDetail(BaseModel):
    type: str
    message: str
    field: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response model"""
    error: str = Field(..., description="High-level error summary")
    detail: Optional[str] = Field(None, description="Detailed error message")
    details: Optional[List[ErrorDetail]] = Field(None, description="Structured validation details")
    error_code: Optional[str] = Field(None, description="Application-specific error code")
    request_id: Optional[str] = Field(None, description="Request identifier for tracing")
