"""
Realtime channel management over the Gemini Live API
Owns one connection at a time: connect, send events, receive transcribed turns, interrupt, disconnect
"""

import asyncio
import re
import traceback
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import structlog
import websockets
from google import genai
from google.genai import types
from google.genai.types import (
    LiveConnectConfig,
    SpeechConfig,
    VoiceConfig,
    PrebuiltVoiceConfig,
)

from speaking_practice.config import Settings, get_settings
from speaking_practice.domain.errors import ChannelConnectionFailure, CredentialUnavailable
from speaking_practice.domain.models import ChannelConfig, ChannelStatus, ConversationRole

logger = structlog.get_logger(__name__)

AudioSink = Callable[[bytes], Awaitable[None]]
TurnListener = Callable[[ConversationRole, str], None]
StatusListener = Callable[[ChannelStatus], None]
LiveConnector = Callable[[str, LiveConnectConfig], Any]


@dataclass(frozen=True)
class UserTextEvent:
    """Inject a user utterance into the conversation.

    Hidden utterances (the synthetic greeting) are sent to the agent but never
    reported as transcript turns.
    """
    text: str
    hidden: bool = False


@dataclass(frozen=True)
class ResponseRequestEvent:
    """Ask the agent to produce its next response"""


ChannelEvent = Union[UserTextEvent, ResponseRequestEvent]


def create_config(system_instruction: str, voice_name: str) -> LiveConnectConfig:
    """Create LiveConnectConfig for a tutoring session"""
    return LiveConnectConfig(
        response_modalities=["AUDIO"],
        output_audio_transcription={},
        input_audio_transcription={},
        speech_config=SpeechConfig(
            voice_config=VoiceConfig(
                prebuilt_voice_config=PrebuiltVoiceConfig(voice_name=voice_name)
            )
        ),
        system_instruction=system_instruction,
        tools=[],
        temperature=0.7,
    )


def default_connector(settings: Settings) -> LiveConnector:
    """Connector opening a Live API session authorised by an ephemeral token"""
    def connect(credential: str, config: LiveConnectConfig):
        client = genai.Client(
            api_key=credential,
            http_options=types.HttpOptions(api_version="v1alpha"),
        )
        return client.aio.live.connect(model=settings.REALTIME_MODEL, config=config)
    return connect


def safe_extract_text(transcription_obj) -> str:
    """Extract raw text from a transcription object, string or dict."""
    if transcription_obj is None:
        return ""
    if isinstance(transcription_obj, str):
        return transcription_obj
    text = getattr(transcription_obj, "text", None)
    if isinstance(text, str):
        return text
    if isinstance(transcription_obj, dict) and isinstance(transcription_obj.get("text"), str):
        return transcription_obj["text"]
    return ""


def normalize_transcription_text(text: str) -> str:
    """Collapse whitespace in an assembled transcription."""
    return re.sub(r"\s+", " ", text).strip()


class TurnBuffer:
    """Buffer to accumulate transcription fragments during a turn"""

    def __init__(self):
        self.reset()

    def reset(self):
        """Reset buffer for new turn"""
        self.user_fragments: List[str] = []
        self.assistant_fragments: List[str] = []

    def add_user_fragment(self, text: str):
        if text:
            self.user_fragments.append(text)

    def add_assistant_fragment(self, text: str):
        if text:
            self.assistant_fragments.append(text)

    def get_user_text(self) -> str:
        return normalize_transcription_text("".join(self.user_fragments))

    def get_assistant_text(self) -> str:
        return normalize_transcription_text("".join(self.assistant_fragments))

    def drain(self) -> List[tuple]:
        """Completed turns in conversational order (learner first), then reset"""
        turns = []
        user_text = self.get_user_text()
        if user_text:
            turns.append((ConversationRole.USER, user_text))
        assistant_text = self.get_assistant_text()
        if assistant_text:
            turns.append((ConversationRole.ASSISTANT, assistant_text))
        self.reset()
        return turns

    def get_turn_summary(self) -> Dict[str, Any]:
        return {
            "user_fragments": len(self.user_fragments),
            "assistant_fragments": len(self.assistant_fragments),
        }


class RealtimeChannelManager:
    """Connection lifecycle to the realtime voice agent"""

    def __init__(self, settings: Optional[Settings] = None, connector: Optional[LiveConnector] = None):
        self.settings = settings or get_settings()
        self._connector = connector or default_connector(self.settings)

        self._status = ChannelStatus.DISCONNECTED
        self._session = None
        self._session_manager = None
        self._listen_task: Optional[asyncio.Task] = None
        self._greeting_task: Optional[asyncio.Task] = None
        self._audio_sink: Optional[AudioSink] = None
        self._interrupted = False

        self._turn_listeners: List[TurnListener] = []
        self._status_listeners: List[StatusListener] = []
        self.turn_buffer = TurnBuffer()
        self.turn_count = 0

    @property
    def status(self) -> ChannelStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status == ChannelStatus.CONNECTED

    def add_turn_listener(self, listener: TurnListener):
        self._turn_listeners.append(listener)

    def add_status_listener(self, listener: StatusListener):
        self._status_listeners.append(listener)

    def _set_status(self, status: ChannelStatus):
        if status == self._status:
            return
        logger.info("Channel status changed", previous=self._status.value, status=status.value)
        self._status = status
        for listener in list(self._status_listeners):
            try:
                listener(status)
            except Exception as e:
                logger.error("Status listener failed", status=status.value, error=str(e))

    def _emit_turn(self, role: ConversationRole, text: str):
        for listener in list(self._turn_listeners):
            try:
                listener(role, text)
            except Exception as e:
                logger.error("Turn listener failed", role=role.value, error=str(e))

    async def connect(self, config: ChannelConfig):
        """Open the Live API session; raises on failure and returns to DISCONNECTED"""
        if self._status != ChannelStatus.DISCONNECTED:
            raise ChannelConnectionFailure(f"Channel is already {self._status.value}")
        if not config.credential:
            raise CredentialUnavailable("No ephemeral credential supplied")

        self._set_status(ChannelStatus.CONNECTING)
        live_config = create_config(
            config.system_instruction,
            config.voice_name or self.settings.REALTIME_VOICE,
        )

        try:
            self._session_manager = self._connector(config.credential, live_config)
            self._session = await self._session_manager.__aenter__()
        except asyncio.CancelledError:
            self._session = None
            self._session_manager = None
            self._set_status(ChannelStatus.DISCONNECTED)
            raise
        except Exception as e:
            logger.error("Failed to open realtime channel", error=str(e))
            self._session = None
            self._session_manager = None
            self._set_status(ChannelStatus.DISCONNECTED)
            raise ChannelConnectionFailure(f"Realtime connection failed: {e}") from e

        self._audio_sink = config.audio_sink
        self._interrupted = False
        self.turn_buffer.reset()
        self._listen_task = asyncio.create_task(self._listen_for_responses())
        self._set_status(ChannelStatus.CONNECTED)

        if self.settings.GREETING_TEXT:
            self._greeting_task = asyncio.create_task(self._send_greeting())

    async def _send_greeting(self):
        """Prompt the agent to speak first with a hidden user turn"""
        await asyncio.sleep(self.settings.GREETING_DELAY_SECONDS)
        if not self.is_connected:
            return
        try:
            await self.send_event(UserTextEvent(self.settings.GREETING_TEXT, hidden=True))
            await self.send_event(ResponseRequestEvent())
        except Exception as e:
            logger.error("Failed to send greeting", error=str(e))

    async def send_event(self, event: ChannelEvent):
        """Transmit a structured conversational event over the open channel"""
        if not self.is_connected or self._session is None:
            raise ChannelConnectionFailure("Channel is not connected")

        if isinstance(event, UserTextEvent):
            await self._session.send_client_content(
                turns=types.Content(role="user", parts=[types.Part(text=event.text)]),
                turn_complete=False,
            )
            if not event.hidden:
                self._emit_turn(ConversationRole.USER, normalize_transcription_text(event.text))
        elif isinstance(event, ResponseRequestEvent):
            await self._session.send_client_content(turn_complete=True)
        else:
            raise TypeError(f"Unsupported channel event: {type(event).__name__}")

        logger.debug("Channel event sent", event_type=type(event).__name__)

    async def send_audio(self, chunk: bytes):
        """Forward a learner PCM chunk; dropped while not connected"""
        if not self.is_connected or self._session is None:
            logger.debug("Dropping audio chunk while channel is not connected")
            return
        await self._session.send_realtime_input(
            audio=types.Blob(data=chunk, mime_type=f"audio/pcm;rate={self.settings.SEND_SAMPLE_RATE}")
        )

    async def interrupt(self):
        """
        Mute relayed agent audio until the current turn ends

        Nothing is sent to the agent; its turn still runs to completion and
        the turn transcription is still reported to turn listeners.
        """
        if not self.is_connected:
            return
        logger.info("Interrupting agent output")
        self._interrupted = True

    async def _listen_for_responses(self):
        """Receive agent output and assemble transcribed turns"""
        logger.info("Starting response listener")
        try:
            while self.is_connected:
                async for response in self._session.receive():
                    if not self.is_connected:
                        break
                    await self._handle_response(response)
                if self.is_connected:
                    await asyncio.sleep(0.1)
        except asyncio.CancelledError:
            logger.info("Response listener cancelled")
            raise
        except websockets.exceptions.ConnectionClosedOK:
            logger.info("Realtime session closed normally")
        except websockets.exceptions.ConnectionClosed:
            logger.warning("Realtime session connection lost")
        except Exception as e:
            logger.error("Error in response listener", error=str(e))
            logger.error("Response listener traceback", traceback=traceback.format_exc())

        if self.is_connected:
            # Remote end went away: keep what the learner already said
            for role, text in self.turn_buffer.drain():
                self._emit_turn(role, text)
            await self._release(cancel_listener=False)
        logger.info("Response listener stopped")

    async def _handle_response(self, response):
        server_content = getattr(response, "server_content", None)
        if not server_content:
            return

        model_turn = getattr(server_content, "model_turn", None)
        if model_turn and model_turn.parts:
            for part in model_turn.parts:
                inline_data = getattr(part, "inline_data", None)
                if not inline_data or not inline_data.data:
                    continue
                if self._interrupted or self._audio_sink is None:
                    continue
                try:
                    await self._audio_sink(inline_data.data)
                except Exception as e:
                    logger.error("Error sending audio to sink", error=str(e))

        output_transcription = getattr(server_content, "output_transcription", None)
        if output_transcription:
            self.turn_buffer.add_assistant_fragment(safe_extract_text(output_transcription))

        input_transcription = getattr(server_content, "input_transcription", None)
        if input_transcription:
            self.turn_buffer.add_user_fragment(safe_extract_text(input_transcription))

        if getattr(server_content, "interrupted", False):
            logger.debug("Agent output interrupted by learner speech")

        if getattr(server_content, "turn_complete", False):
            self.turn_count += 1
            self._interrupted = False
            summary = self.turn_buffer.get_turn_summary()
            for role, text in self.turn_buffer.drain():
                self._emit_turn(role, text)
            logger.info("Turn completed", turn_count=self.turn_count, buffer_summary=summary)

    async def disconnect(self):
        """Release the channel; safe to call from any state"""
        if (self._status == ChannelStatus.DISCONNECTED
                and self._session_manager is None
                and self._listen_task is None):
            return
        logger.info("Disconnecting realtime channel", turn_count=self.turn_count)
        await self._release(cancel_listener=True)

    async def _release(self, cancel_listener: bool):
        self._set_status(ChannelStatus.DISCONNECTED)
        self.turn_buffer.reset()
        self._audio_sink = None

        if self._greeting_task and not self._greeting_task.done():
            self._greeting_task.cancel()
        self._greeting_task = None

        listen_task, self._listen_task = self._listen_task, None
        if cancel_listener and listen_task and not listen_task.done() \
                and listen_task is not asyncio.current_task():
            listen_task.cancel()
            try:
                await asyncio.wait_for(listen_task, timeout=2.0)
            except (asyncio.CancelledError, asyncio.TimeoutError):
                pass

        session_manager, self._session_manager = self._session_manager, None
        self._session = None
        if session_manager is not None:
            try:
                await session_manager.__aexit__(None, None, None)
                logger.info("Realtime session closed properly")
            except Exception as e:
                logger.error("Error closing realtime session", error=str(e))
