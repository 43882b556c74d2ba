"""
WebSocket surface for one live tutoring conversation

Client messages:
    {"type": "audio", "data": <base64 pcm>}
    {"type": "interrupt"}
    {"type": "end_conversation"}
    {"type": "retry"}

Server messages: status, duration, transcript, audio, rejected, complete, error
"""

import asyncio
import base64
import binascii
import json
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
import structlog

from speaking_practice.api.deps import (
    get_channel_factory, get_credential_provider, get_grading_service,
    get_passage_catalog, get_session_store,
)
from speaking_practice.config import Settings, get_settings
from speaking_practice.domain.errors import SpeakingPracticeError
from speaking_practice.domain.models import ChannelStatus, OrchestratorState, Turn
from speaking_practice.session.orchestrator import ConversationSession, SessionOrchestrator

logger = structlog.get_logger(__name__)
router = APIRouter()


def status_message(
    state: OrchestratorState,
    session: ConversationSession,
    channel_status: Optional[ChannelStatus] = None
) -> Dict[str, Any]:
    message = {
        "type": "status",
        "state": state.value,
        "channel": channel_status.value if channel_status else None,
        "duration": session.duration,
    }
    if state == OrchestratorState.ERROR:
        message["error"] = session.error_message
        message["errorType"] = session.error.error_type if session.error else None
        message["failedState"] = session.failed_state.value if session.failed_state else None
    return message


def turn_message(turn: Turn) -> Dict[str, Any]:
    return {"type": "transcript", "role": turn.role.value, "content": turn.content}


async def _pump(websocket: WebSocket, outbox: asyncio.Queue):
    """Send queued messages in order until the socket goes away"""
    while True:
        message = await outbox.get()
        try:
            await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.info("Stopped sending to closed socket", error=str(e))
            return


async def _run_post_processing(action: Callable, push: Callable[[Dict[str, Any]], None]):
    """Run end/retry off the receive loop and report the outcome"""
    try:
        session_id = await action()
    except SpeakingPracticeError as e:
        # State listeners have already published the ERROR status
        push({"type": "error", "message": e.message, "errorType": e.error_type})
        return
    if session_id is None:
        push({"type": "rejected", "reason": "End request was refused"})


@router.websocket("/ws/conversation/{passage_id}")
async def conversation_socket(
    websocket: WebSocket,
    passage_id: str,
    catalog=Depends(get_passage_catalog),
    store=Depends(get_session_store),
    grader=Depends(get_grading_service),
    credential_provider=Depends(get_credential_provider),
    channel_factory=Depends(get_channel_factory),
    settings: Settings = Depends(get_settings),
):
    await websocket.accept()
    outbox: asyncio.Queue = asyncio.Queue()
    push = outbox.put_nowait

    async def audio_sink(chunk: bytes):
        push({
            "type": "audio",
            "data": base64.b64encode(chunk).decode("ascii"),
            "sampleRate": settings.RECEIVE_SAMPLE_RATE,
        })

    orchestrator = SessionOrchestrator(
        catalog=catalog,
        channel=channel_factory(),
        grader=grader,
        store=store,
        credential_provider=credential_provider,
        settings=settings,
        audio_sink=audio_sink,
    )
    orchestrator.add_state_listener(
        lambda state, session: push(status_message(state, session, orchestrator.channel.status))
    )
    orchestrator.add_turn_listener(lambda turn: push(turn_message(turn)))
    orchestrator.add_tick_listener(lambda seconds: push({"type": "duration", "seconds": seconds}))
    orchestrator.add_complete_listener(lambda session_id: push({"type": "complete", "sessionId": session_id}))

    sender = asyncio.create_task(_pump(websocket, outbox))
    post_task: Optional[asyncio.Task] = None
    logger.info("Conversation socket opened", passage_id=passage_id)

    try:
        try:
            await orchestrator.start(passage_id=passage_id)
        except SpeakingPracticeError as e:
            push({"type": "error", "message": e.message, "errorType": e.error_type})

        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.warning("Invalid JSON received", passage_id=passage_id, error=str(e))
                push({"type": "error", "message": "Invalid JSON format"})
                continue

            message_type = data.get("type") if isinstance(data, dict) else None

            if message_type == "audio":
                audio_b64 = data.get("data")
                if not audio_b64:
                    continue
                try:
                    chunk = base64.b64decode(audio_b64)
                except (binascii.Error, ValueError) as e:
                    push({"type": "error", "message": f"Invalid audio payload: {e}"})
                    continue
                await orchestrator.send_audio(chunk)

            elif message_type == "interrupt":
                await orchestrator.interrupt()

            elif message_type == "end_conversation":
                if post_task and not post_task.done():
                    push({"type": "rejected", "reason": "End request already in progress"})
                    continue
                reason = orchestrator.end_blocked_reason()
                if reason:
                    push({"type": "rejected", "reason": reason})
                    continue
                post_task = asyncio.create_task(
                    _run_post_processing(orchestrator.end_conversation, push)
                )

            elif message_type == "retry":
                if post_task and not post_task.done():
                    push({"type": "rejected", "reason": "Post-processing already in progress"})
                    continue
                post_task = asyncio.create_task(
                    _run_post_processing(orchestrator.retry, push)
                )

            else:
                push({"type": "error", "message": f"Unknown message type: {message_type}"})

    except WebSocketDisconnect:
        logger.info("Conversation socket closed by client",
                   passage_id=passage_id,
                   state=orchestrator.state.value)
    finally:
        if post_task is not None:
            # Let grading and saving finish even though nobody is listening
            await post_task
        await orchestrator.close()
        sender.cancel()
