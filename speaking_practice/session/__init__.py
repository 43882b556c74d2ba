"""
Session lifecycle: timing and orchestration of one tutoring session
"""

from .timer import SessionTimer
from .orchestrator import SessionOrchestrator, ConversationSession

__all__ = [
    "SessionTimer",
    "SessionOrchestrator",
    "ConversationSession"
]
