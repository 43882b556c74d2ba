"""Shared fixtures and in-memory collaborators for session tests."""
from unittest.mock import AsyncMock

import pytest

from speaking_practice.config import Settings
from speaking_practice.domain.models import (
    ChannelStatus, ConversationRole, EvaluationResult, Passage, Question,
)


EVALUATION_PAYLOAD = {
    "comprehensionScore": 80,
    "fluencyScore": 72,
    "lexicalScore": 75,
    "grammaticalScore": 70,
    "pronunciationScore": 78,
    "responsivenessScore": 85,
    "overallScore": 77,
    "comprehensionFeedback": "Understood the main idea.",
    "fluencyFeedback": "Some hesitation.",
    "lexicalFeedback": "Good range.",
    "grammaticalFeedback": "Minor tense errors.",
    "pronunciationFeedback": "Clear overall.",
    "responsivenessFeedback": "Answered every question.",
    "overallFeedback": "Solid effort.",
}


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeChannel:
    """Channel double that connects instantly and lets tests inject turns"""

    def __init__(self, fail_with=None, turns_on_connect=()):
        self.status = ChannelStatus.DISCONNECTED
        self.fail_with = fail_with
        self.turns_on_connect = list(turns_on_connect)
        self.config = None
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.audio = []
        self.interrupted = False
        self.calls = []
        self._turn_listeners = []
        self._status_listeners = []

    def add_turn_listener(self, listener):
        self._turn_listeners.append(listener)

    def add_status_listener(self, listener):
        self._status_listeners.append(listener)

    def _set_status(self, status):
        if status == self.status:
            return
        self.status = status
        for listener in self._status_listeners:
            listener(status)

    def emit_turn(self, role, text):
        for listener in self._turn_listeners:
            listener(ConversationRole(role), text)

    async def connect(self, config):
        self.connect_calls += 1
        self.calls.append("connect")
        self.config = config
        self._set_status(ChannelStatus.CONNECTING)
        if self.fail_with is not None:
            self._set_status(ChannelStatus.DISCONNECTED)
            raise self.fail_with
        self._set_status(ChannelStatus.CONNECTED)
        for role, text in self.turns_on_connect:
            self.emit_turn(role, text)

    async def send_audio(self, chunk):
        self.audio.append(chunk)

    async def interrupt(self):
        self.interrupted = True

    async def disconnect(self):
        self.disconnect_calls += 1
        self.calls.append("disconnect")
        self._set_status(ChannelStatus.DISCONNECTED)


@pytest.fixture
def settings():
    return Settings(
        GEMINI_API_KEY="test-key",
        SUPABASE_URL=None,
        SUPABASE_SERVICE_ROLE_KEY=None,
        MIN_SESSION_SECONDS=30,
        GREETING_TEXT="",
        GREETING_DELAY_SECONDS=0.0,
        CONNECT_TIMEOUT_SECONDS=1.0,
        GRADING_TIMEOUT_SECONDS=1.0,
        PERSIST_TIMEOUT_SECONDS=1.0,
    )


@pytest.fixture
def passage():
    return Passage(
        id="passage-1",
        title="The Lighthouse Keeper",
        content="Every night the keeper climbed the stairs to light the lamp.",
        time_limit=300,
        questions=(
            Question(id="q2", question_text="Why did the keeper stay?", recommended_answer="Duty.", order=2),
            Question(id="q1", question_text="What did the keeper do each night?", recommended_answer="Lit the lamp.", order=1),
        ),
    )


@pytest.fixture
def evaluation():
    return EvaluationResult.model_validate(EVALUATION_PAYLOAD)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def catalog(passage):
    catalog = AsyncMock()
    catalog.get_passage.return_value = passage
    return catalog


@pytest.fixture
def grader(evaluation):
    grader = AsyncMock()
    grader.grade.return_value = evaluation
    return grader


@pytest.fixture
def store():
    store = AsyncMock()
    store.create_session.side_effect = lambda record: record.id
    return store


@pytest.fixture
def credential_provider():
    return AsyncMock(return_value="auth_tokens/ephemeral")
