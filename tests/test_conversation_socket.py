"""Tests for the conversation WebSocket."""
import base64
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from speaking_practice.api.deps import (
    get_channel_factory, get_credential_provider, get_grading_service,
    get_passage_catalog, get_session_store,
)
from speaking_practice.api.main import create_app
from speaking_practice.config import get_settings
from speaking_practice.domain.errors import GradingFailure
from tests.conftest import FakeChannel


@pytest.fixture
def fake_channel():
    return FakeChannel(turns_on_connect=[
        ("assistant", "Hello! What did you think of the passage?"),
        ("user", "It was moving."),
    ])


@pytest.fixture
def client(catalog, store, grader, settings, fake_channel):
    app = create_app()
    app.dependency_overrides[get_passage_catalog] = lambda: catalog
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_grading_service] = lambda: grader
    app.dependency_overrides[get_credential_provider] = lambda: AsyncMock(return_value="auth_tokens/ws")
    app.dependency_overrides[get_channel_factory] = lambda: (lambda: fake_channel)
    app.dependency_overrides[get_settings] = lambda: settings
    return TestClient(app)


def receive_until(websocket, predicate, limit=50):
    seen = []
    for _ in range(limit):
        message = websocket.receive_json()
        seen.append(message)
        if predicate(message):
            return seen
    raise AssertionError(f"expected message not received: {seen}")


def is_state(state):
    return lambda message: message["type"] == "status" and message["state"] == state


def test_full_conversation_over_socket(client, settings, store, fake_channel):
    settings.MIN_SESSION_SECONDS = 0

    with client.websocket_connect("/ws/conversation/passage-1") as websocket:
        opening = receive_until(websocket, is_state("IN_CONVERSATION"))
        assert [m["state"] for m in opening if m["type"] == "status"] == [
            "LOADING_PASSAGE", "CONNECTING", "IN_CONVERSATION",
        ]
        assert opening[-1]["channel"] == "CONNECTED"

        transcript = receive_until(websocket, lambda m: m["type"] == "transcript" and m["role"] == "user")
        assert [m["content"] for m in transcript if m["type"] == "transcript"] == [
            "Hello! What did you think of the passage?",
            "It was moving.",
        ]

        websocket.send_json({"type": "audio", "data": base64.b64encode(b"\x00\x01").decode("ascii")})
        websocket.send_json({"type": "end_conversation"})
        closing = receive_until(websocket, lambda m: m["type"] == "complete")

    states = [m["state"] for m in closing if m["type"] == "status"]
    assert states == ["ENDING", "GRADING", "PERSISTING", "COMPLETE"]
    session_id = closing[-1]["sessionId"]
    assert store.create_session.await_args.args[0].id == session_id
    assert fake_channel.audio == [b"\x00\x01"]


def test_early_end_is_rejected(client, grader):
    with client.websocket_connect("/ws/conversation/passage-1") as websocket:
        receive_until(websocket, is_state("IN_CONVERSATION"))
        websocket.send_json({"type": "end_conversation"})
        messages = receive_until(websocket, lambda m: m["type"] == "rejected")

    assert "30 seconds" in messages[-1]["reason"]
    grader.grade.assert_not_awaited()


def test_unknown_passage_reports_error(client, catalog, fake_channel):
    catalog.get_passage.return_value = None

    with client.websocket_connect("/ws/conversation/missing") as websocket:
        messages = receive_until(websocket, lambda m: m["type"] == "error")

    error_status = next(m for m in messages if m["type"] == "status" and m["state"] == "ERROR")
    assert error_status["errorType"] == "PassageNotFound"
    assert error_status["failedState"] == "LOADING_PASSAGE"
    assert fake_channel.connect_calls == 0


def test_invalid_messages_are_reported(client):
    with client.websocket_connect("/ws/conversation/passage-1") as websocket:
        receive_until(websocket, is_state("IN_CONVERSATION"))
        websocket.send_text("not json")
        invalid = receive_until(websocket, lambda m: m["type"] == "error")
        websocket.send_json({"type": "dance"})
        unknown = receive_until(websocket, lambda m: m["type"] == "error")

    assert invalid[-1]["message"] == "Invalid JSON format"
    assert "dance" in unknown[-1]["message"]


def test_failed_grading_can_be_retried(client, settings, grader, store, evaluation):
    settings.MIN_SESSION_SECONDS = 0
    grader.grade.side_effect = [GradingFailure("service unavailable"), evaluation]

    with client.websocket_connect("/ws/conversation/passage-1") as websocket:
        receive_until(websocket, is_state("IN_CONVERSATION"))
        websocket.send_json({"type": "end_conversation"})
        failure = receive_until(websocket, lambda m: m["type"] == "error")
        websocket.send_json({"type": "retry"})
        receive_until(websocket, lambda m: m["type"] == "complete")

    error_status = next(m for m in failure if m["type"] == "status" and m["state"] == "ERROR")
    assert error_status["failedState"] == "GRADING"
    assert grader.grade.await_count == 2
    store.create_session.assert_awaited_once()
