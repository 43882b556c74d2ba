"""
Realtime voice agent integration
"""

from .channel import (
    RealtimeChannelManager, UserTextEvent, ResponseRequestEvent,
    TurnBuffer, create_config, default_connector
)
from .credentials import fetch_ephemeral_token

__all__ = [
    "RealtimeChannelManager", "UserTextEvent", "ResponseRequestEvent",
    "TurnBuffer", "create_config", "default_connector",
    "fetch_ephemeral_token"
]
