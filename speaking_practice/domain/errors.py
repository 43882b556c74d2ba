"""
Error taxonomy for practice sessions
"""

from typing import Optional


class SpeakingPracticeError(Exception):
    """Base error carrying a human-readable message"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def error_type(self) -> str:
        return type(self).__name__


class PassageNotFound(SpeakingPracticeError):
    def __init__(self, passage_id: str):
        super().__init__(f"Passage not found: {passage_id}")
        self.passage_id = passage_id


class SessionNotFound(SpeakingPracticeError):
    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class CredentialUnavailable(SpeakingPracticeError):
    pass


class ChannelConnectionFailure(SpeakingPracticeError):
    pass


class GradingFailure(SpeakingPracticeError):
    """Grading service could not be reached or produced no answer"""
    pass


class MalformedGradingResponse(GradingFailure):
    """Grading service answered with something other than the expected object"""

    def __init__(self, message: str, raw_response: Optional[str] = None):
        super().__init__(message)
        self.raw_response = raw_response


class PersistenceFailure(SpeakingPracticeError):
    pass


class CatalogUnavailable(SpeakingPracticeError):
    """Passage catalog could not be read"""
    pass
