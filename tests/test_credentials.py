"""Tests for ephemeral token issuance."""
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from speaking_practice.domain.errors import CredentialUnavailable
from speaking_practice.realtime.credentials import fetch_ephemeral_token


@pytest.mark.asyncio
async def test_fetch_returns_single_use_token_name(settings):
    with patch("speaking_practice.realtime.credentials.genai.Client") as client_class:
        client = client_class.return_value
        client.auth_tokens.create.return_value = SimpleNamespace(name="auth_tokens/abc123")

        token = await fetch_ephemeral_token(settings)

    assert token == "auth_tokens/abc123"
    config = client.auth_tokens.create.call_args.kwargs["config"]
    assert config["uses"] == 1
    assert config["expire_time"] > config["new_session_expire_time"]


@pytest.mark.asyncio
async def test_missing_api_key_is_unavailable(settings):
    settings.GEMINI_API_KEY = None

    with pytest.raises(CredentialUnavailable):
        await fetch_ephemeral_token(settings)


@pytest.mark.asyncio
async def test_request_error_is_unavailable(settings):
    with patch("speaking_practice.realtime.credentials.genai.Client") as client_class:
        client_class.return_value.auth_tokens.create.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(CredentialUnavailable):
            await fetch_ephemeral_token(settings)


@pytest.mark.asyncio
async def test_response_without_token_is_unavailable(settings):
    with patch("speaking_practice.realtime.credentials.genai.Client") as client_class:
        client_class.return_value.auth_tokens.create.return_value = SimpleNamespace(name=None)

        with pytest.raises(CredentialUnavailable) as exc_info:
            await fetch_ephemeral_token(settings)

    assert exc_info.value.message == "No ephemeral key provided by the server"
