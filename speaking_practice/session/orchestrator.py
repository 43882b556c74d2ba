"""
Session orchestration for one realtime tutoring session

Sequences connect -> converse -> end -> grade -> persist and owns the
failure policy. All mutations happen on the event loop; channel callbacks,
timer ticks and the end request are processed in arrival order.
"""

import asyncio
import time
from typing import Awaitable, Callable, List, Optional

import structlog

from speaking_practice.config import Settings, get_settings
from speaking_practice.domain.errors import (
    ChannelConnectionFailure, CredentialUnavailable, GradingFailure,
    PassageNotFound, PersistenceFailure, SpeakingPracticeError,
)
from speaking_practice.domain.models import (
    ChannelConfig, ChannelStatus, ConversationRole, EvaluationResult,
    OrchestratorState, Passage, QUESTION_DELIMITER, SessionRecord, Turn,
)
from speaking_practice.domain.transcript import TranscriptAccumulator
from speaking_practice.prompts.tutor_prompts import build_system_instruction
from speaking_practice.session.timer import SessionTimer
from speaking_practice.services.session_store import generate_session_id

logger = structlog.get_logger(__name__)

CredentialProvider = Callable[[], Awaitable[str]]
StateListener = Callable[[OrchestratorState, "ConversationSession"], None]
TurnListener = Callable[[Turn], None]
CompleteListener = Callable[[str], None]

RETRYABLE_STATES = (OrchestratorState.GRADING, OrchestratorState.PERSISTING)


class ConversationSession:
    """In-memory state of one practice session"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.passage: Optional[Passage] = None
        self.transcript = TranscriptAccumulator()
        self.timer = SessionTimer(clock=clock)
        self.processing = False
        self.evaluation: Optional[EvaluationResult] = None
        self.session_id: Optional[str] = None
        self.record: Optional[SessionRecord] = None
        self.error: Optional[SpeakingPracticeError] = None
        self.failed_state: Optional[OrchestratorState] = None

    @property
    def duration(self) -> int:
        return self.timer.elapsed_seconds

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None


class SessionOrchestrator:
    """State machine for one tutoring session.

    The realtime channel is owned exclusively by this object. Ending the
    conversation disconnects the channel before grading starts, so turns
    arriving afterwards never reach the graded transcript.
    """

    def __init__(
        self,
        catalog,
        channel,
        grader,
        store,
        credential_provider: CredentialProvider,
        settings: Optional[Settings] = None,
        audio_sink=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.catalog = catalog
        self.channel = channel
        self.grader = grader
        self.store = store
        self.credential_provider = credential_provider
        self.settings = settings or get_settings()
        self.audio_sink = audio_sink
        self._clock = clock

        self.state = OrchestratorState.IDLE
        self.session = ConversationSession(clock=clock)

        self._state_listeners: List[StateListener] = []
        self._turn_listeners: List[TurnListener] = []
        self._complete_listeners: List[CompleteListener] = []
        self._tick_listeners: List[Callable[[int], None]] = []

        self.channel.add_turn_listener(self._on_channel_turn)
        self.channel.add_status_listener(self._on_channel_status)

    # Subscriptions

    def add_state_listener(self, listener: StateListener):
        self._state_listeners.append(listener)

    def add_turn_listener(self, listener: TurnListener):
        self._turn_listeners.append(listener)

    def add_complete_listener(self, listener: CompleteListener):
        self._complete_listeners.append(listener)

    def add_tick_listener(self, listener: Callable[[int], None]):
        self._tick_listeners.append(listener)
        self.session.timer.add_tick_listener(listener)

    def _notify(self, listeners, *args):
        for listener in list(listeners):
            try:
                listener(*args)
            except Exception as e:
                logger.error("Session listener failed", error=str(e))

    def _transition(self, state: OrchestratorState):
        previous, self.state = self.state, state
        logger.info("Session state changed",
                   previous=previous.value,
                   state=state.value,
                   passage_id=self.session.passage.id if self.session.passage else None)
        self._notify(self._state_listeners, state, self.session)

    def _fail(self, error: SpeakingPracticeError) -> SpeakingPracticeError:
        self.session.error = error
        self.session.failed_state = self.state
        logger.error("Session failed",
                    failed_state=self.state.value,
                    error_type=error.error_type,
                    error=error.message)
        self._transition(OrchestratorState.ERROR)
        return error

    # Channel callbacks

    def _on_channel_status(self, status: ChannelStatus):
        if status == ChannelStatus.CONNECTED and self.state == OrchestratorState.CONNECTING:
            self.session.timer.start()
            self._transition(OrchestratorState.IN_CONVERSATION)
        elif status == ChannelStatus.DISCONNECTED:
            self.session.timer.stop()
            if self.state == OrchestratorState.IN_CONVERSATION:
                logger.warning("Channel dropped during conversation",
                              duration=self.session.duration,
                              turns=len(self.session.transcript))

    def _on_channel_turn(self, role: ConversationRole, content: str):
        if self.state != OrchestratorState.IN_CONVERSATION:
            logger.info("Dropping turn outside conversation", role=role.value, state=self.state.value)
            return
        if self.session.transcript.append(role, content):
            self._notify(self._turn_listeners, self.session.transcript.snapshot()[-1])

    # Lifecycle

    async def start(self, passage_id: Optional[str] = None, passage: Optional[Passage] = None) -> OrchestratorState:
        """Load the passage and open the realtime channel"""
        if self.state != OrchestratorState.IDLE:
            raise SpeakingPracticeError(f"Session already started ({self.state.value})")
        if passage is None and not passage_id:
            raise SpeakingPracticeError("A passage or passage id is required")

        self._transition(OrchestratorState.LOADING_PASSAGE)
        if passage is None:
            try:
                passage = await self.catalog.get_passage(passage_id)
            except SpeakingPracticeError as e:
                raise self._fail(e)
            except Exception as e:
                raise self._fail(SpeakingPracticeError(f"Failed to load passage: {e}")) from e
            if passage is None:
                raise self._fail(PassageNotFound(passage_id))

        self.session.passage = passage
        await self._connect()
        return self.state

    async def _connect(self):
        self._transition(OrchestratorState.CONNECTING)
        passage = self.session.passage
        timeout = self.settings.CONNECT_TIMEOUT_SECONDS

        try:
            credential = await asyncio.wait_for(self.credential_provider(), timeout=timeout)
        except CredentialUnavailable as e:
            raise self._fail(e)
        except asyncio.TimeoutError as e:
            raise self._fail(CredentialUnavailable("Timed out requesting ephemeral token")) from e
        except Exception as e:
            raise self._fail(CredentialUnavailable(f"Could not obtain ephemeral token: {e}")) from e
        if not credential:
            raise self._fail(CredentialUnavailable("No ephemeral key provided by the server"))

        config = ChannelConfig(
            credential=credential,
            system_instruction=build_system_instruction(passage),
            audio_sink=self.audio_sink,
            metadata={"passage_id": passage.id},
        )
        try:
            await asyncio.wait_for(self.channel.connect(config), timeout=timeout)
        except (ChannelConnectionFailure, CredentialUnavailable) as e:
            await self.channel.disconnect()
            raise self._fail(e)
        except asyncio.TimeoutError as e:
            await self.channel.disconnect()
            raise self._fail(ChannelConnectionFailure("Timed out connecting to the voice agent")) from e
        except Exception as e:
            await self.channel.disconnect()
            raise self._fail(ChannelConnectionFailure(f"Realtime connection failed: {e}")) from e

        if self.state == OrchestratorState.CONNECTING:
            # connect() returned without the channel reporting CONNECTED
            await self.channel.disconnect()
            raise self._fail(ChannelConnectionFailure("Voice agent did not report a connection"))

    async def send_audio(self, chunk: bytes):
        """Relay microphone audio while the conversation is live"""
        if self.state != OrchestratorState.IN_CONVERSATION:
            return
        await self.channel.send_audio(chunk)

    async def interrupt(self):
        if self.state == OrchestratorState.IN_CONVERSATION:
            await self.channel.interrupt()

    def end_blocked_reason(self) -> Optional[str]:
        """Why an end request would be refused right now, or None"""
        if self.session.processing:
            return "End request already in progress"
        if self.state != OrchestratorState.IN_CONVERSATION:
            return f"Conversation is not in progress ({self.state.value})"
        elapsed = self.session.timer.tick()
        minimum = self.settings.MIN_SESSION_SECONDS
        if elapsed < minimum:
            return f"Conversation must last at least {minimum} seconds ({elapsed}s so far)"
        return None

    def can_end(self) -> bool:
        return self.end_blocked_reason() is None

    async def end_conversation(self) -> Optional[str]:
        """
        End the conversation, grade it and store the result

        Returns:
            The stored session id, or None when the request was refused

        Raises:
            SpeakingPracticeError: grading or persistence failed (state is ERROR)
        """
        reason = self.end_blocked_reason()
        if reason:
            logger.info("End request refused", reason=reason, duration=self.session.duration)
            return None
        # Set before the first await: a second request sees processing=True
        self.session.processing = True

        try:
            self._transition(OrchestratorState.ENDING)
            self.session.transcript.seal()
            try:
                await self.channel.disconnect()
            except Exception as e:
                raise self._fail(SpeakingPracticeError(f"Failed to end conversation: {e}")) from e
            finally:
                self.session.timer.stop()

            return await self._grade_and_persist()
        finally:
            self.session.processing = False

    async def retry(self) -> str:
        """Re-run the post-processing step that failed, without re-grading a graded session"""
        if self.session.processing:
            raise SpeakingPracticeError("Post-processing already in progress")
        if self.state != OrchestratorState.ERROR or self.session.failed_state not in RETRYABLE_STATES:
            raise SpeakingPracticeError("Nothing to retry; restart the session")

        self.session.processing = True
        try:
            logger.info("Retrying post-processing",
                       failed_state=self.session.failed_state.value,
                       graded=self.session.evaluation is not None)
            self.session.error = None
            self.session.failed_state = None
            return await self._grade_and_persist()
        finally:
            self.session.processing = False

    async def _grade_and_persist(self) -> str:
        passage = self.session.passage

        if self.session.evaluation is None:
            self._transition(OrchestratorState.GRADING)
            transcript_text = self.session.transcript.flatten()
            try:
                evaluation = await asyncio.wait_for(
                    self.grader.grade(transcript_text, passage.content, passage.question_texts),
                    timeout=self.settings.GRADING_TIMEOUT_SECONDS,
                )
            except GradingFailure as e:
                raise self._fail(e)
            except asyncio.TimeoutError as e:
                raise self._fail(GradingFailure("Grading timed out")) from e
            except Exception as e:
                raise self._fail(GradingFailure(f"Grading failed: {e}")) from e
            self.session.evaluation = evaluation

        self._transition(OrchestratorState.PERSISTING)
        record = self._build_record()
        try:
            session_id = await asyncio.wait_for(
                self.store.create_session(record),
                timeout=self.settings.PERSIST_TIMEOUT_SECONDS,
            )
        except PersistenceFailure as e:
            raise self._fail(e)
        except asyncio.TimeoutError as e:
            raise self._fail(PersistenceFailure("Saving the session timed out")) from e
        except Exception as e:
            raise self._fail(PersistenceFailure(f"Failed to save session: {e}")) from e

        self.session.record = record
        self.session.session_id = session_id
        self._transition(OrchestratorState.COMPLETE)
        self._notify(self._complete_listeners, session_id)
        return session_id

    def _build_record(self) -> SessionRecord:
        passage = self.session.passage
        if self.session.session_id is None:
            # Reused on retry so a repeated create targets the same record
            self.session.session_id = generate_session_id()
        return SessionRecord(
            id=self.session.session_id,
            user_id=self.settings.PLACEHOLDER_USER_ID,
            passage_id=passage.id,
            full_transcript=self.session.transcript.flatten(),
            duration=self.session.duration,
            evaluation=self.session.evaluation,
            questions_asked=QUESTION_DELIMITER.join(passage.question_texts),
            user_answers="",
            recommended_answers=QUESTION_DELIMITER.join(passage.recommended_answers),
        )

    async def restart(self):
        """Drop the current session and return to IDLE"""
        if self.session.processing:
            raise SpeakingPracticeError("Cannot restart while post-processing is running")
        await self.channel.disconnect()
        self.session.timer.stop()
        self.session = ConversationSession(clock=self._clock)
        for listener in self._tick_listeners:
            self.session.timer.add_tick_listener(listener)
        self._transition(OrchestratorState.IDLE)

    async def close(self):
        """Release the channel when the host goes away"""
        if self.state == OrchestratorState.IN_CONVERSATION:
            logger.warning("Closing session before it was ended",
                          duration=self.session.duration,
                          turns=len(self.session.transcript))
        await self.channel.disconnect()
        self.session.timer.stop()
