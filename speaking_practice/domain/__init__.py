# speaking_practice/domain/__init__.py
"""
Domain package for passage speaking practice
Contains domain models, the transcript accumulator, and the error taxonomy
"""

from .models import (
    ConversationRole, ChannelStatus, OrchestratorState,
    Question, Passage, Turn, EvaluationResult, SessionRecord,
    ChannelConfig, QUESTION_DELIMITER
)
from .errors import (
    SpeakingPracticeError, PassageNotFound, SessionNotFound,
    CredentialUnavailable, ChannelConnectionFailure,
    GradingFailure, MalformedGradingResponse, PersistenceFailure,
    CatalogUnavailable
)
from .transcript import TranscriptAccumulator, flatten_turns

__all__ = [
    "ConversationRole", "ChannelStatus", "OrchestratorState",
    "Question", "Passage", "Turn", "EvaluationResult", "SessionRecord",
    "ChannelConfig", "QUESTION_DELIMITER",
    "SpeakingPracticeError", "PassageNotFound", "SessionNotFound",
    "CredentialUnavailable", "ChannelConnectionFailure",
    "GradingFailure", "MalformedGradingResponse", "PersistenceFailure",
    "CatalogUnavailable",
    "TranscriptAccumulator", "flatten_turns"
]
