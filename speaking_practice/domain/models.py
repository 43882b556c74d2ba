"""
Domain models and data classes for passage speaking practice
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


QUESTION_DELIMITER = "|||"


class ConversationRole(str, Enum):
    """Conversation role enumeration"""
    USER = "user"
    ASSISTANT = "assistant"


class ChannelStatus(str, Enum):
    """Realtime channel connection status"""
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"


class OrchestratorState(str, Enum):
    """Lifecycle of one practice session"""
    IDLE = "IDLE"
    LOADING_PASSAGE = "LOADING_PASSAGE"
    CONNECTING = "CONNECTING"
    IN_CONVERSATION = "IN_CONVERSATION"
    ENDING = "ENDING"
    GRADING = "GRADING"
    PERSISTING = "PERSISTING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Question:
    """Discussion question attached to a passage"""
    id: str
    question_text: str
    recommended_answer: str
    order: int


@dataclass(frozen=True)
class Passage:
    """Catalog passage, read-only for the lifetime of a session"""
    id: str
    title: str
    content: str
    time_limit: int
    questions: Tuple[Question, ...] = ()
    created_at: Optional[datetime] = None
    usage_count: Optional[int] = None

    @property
    def ordered_questions(self) -> List[Question]:
        return sorted(self.questions, key=lambda q: q.order)

    @property
    def question_texts(self) -> List[str]:
        return [q.question_text for q in self.ordered_questions]

    @property
    def recommended_answers(self) -> List[str]:
        return [q.recommended_answer for q in self.ordered_questions]


@dataclass(frozen=True)
class Turn:
    """One utterance from the learner or the tutor"""
    role: ConversationRole
    content: str


class EvaluationResult(BaseModel):
    """Structured grading outcome for one transcript"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    comprehension_score: int = Field(alias="comprehensionScore", ge=0, le=100)
    fluency_score: int = Field(alias="fluencyScore", ge=0, le=100)
    lexical_score: int = Field(alias="lexicalScore", ge=0, le=100)
    grammatical_score: int = Field(alias="grammaticalScore", ge=0, le=100)
    pronunciation_score: int = Field(alias="pronunciationScore", ge=0, le=100)
    responsiveness_score: int = Field(alias="responsivenessScore", ge=0, le=100)
    overall_score: int = Field(alias="overallScore", ge=0, le=100)

    comprehension_feedback: str = Field(alias="comprehensionFeedback")
    fluency_feedback: str = Field(alias="fluencyFeedback")
    lexical_feedback: str = Field(alias="lexicalFeedback")
    grammatical_feedback: str = Field(alias="grammaticalFeedback")
    pronunciation_feedback: str = Field(alias="pronunciationFeedback")
    responsiveness_feedback: str = Field(alias="responsivenessFeedback")
    overall_feedback: str = Field(alias="overallFeedback")


@dataclass
class SessionRecord:
    """Durable record of one completed, graded practice session"""
    id: str
    user_id: str
    passage_id: str
    full_transcript: str
    duration: int
    evaluation: EvaluationResult
    questions_asked: str = ""
    user_answers: str = ""
    recommended_answers: str = ""
    created_at: Optional[datetime] = None

    def to_row(self) -> Dict[str, Any]:
        """Column mapping for the session store"""
        ev = self.evaluation
        row = {
            "id": self.id,
            "user_id": self.user_id,
            "passage_id": self.passage_id,
            "full_transcript": self.full_transcript,
            "duration": self.duration,
            "comprehension_score": ev.comprehension_score,
            "fluency_score": ev.fluency_score,
            "lexical_score": ev.lexical_score,
            "grammatical_score": ev.grammatical_score,
            "pronunciation_score": ev.pronunciation_score,
            "responsiveness_score": ev.responsiveness_score,
            "overall_score": ev.overall_score,
            "comprehension_feedback": ev.comprehension_feedback,
            "fluency_feedback": ev.fluency_feedback,
            "lexical_feedback": ev.lexical_feedback,
            "grammatical_feedback": ev.grammatical_feedback,
            "pronunciation_feedback": ev.pronunciation_feedback,
            "responsiveness_feedback": ev.responsiveness_feedback,
            "questions_asked": self.questions_asked,
            "user_answers": self.user_answers,
            "recommended_answers": self.recommended_answers,
        }
        if self.created_at is not None:
            row["created_at"] = self.created_at.isoformat()
        return row


@dataclass
class ChannelConfig:
    """Everything the realtime channel needs to open a connection"""
    credential: str
    system_instruction: str
    audio_sink: Optional[Any] = None
    voice_name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
