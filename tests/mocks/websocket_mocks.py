"""
Mock factory functions for WebSocket testing.
"""

from unittest.mock import AsyncMock, MagicMock

from fastapi import WebSocket
from starlette.websockets import WebSocketState


def create_mock_websocket(open: bool = True):
    """
    Creates a mock WebSocket connection with async send/receive methods.

    Args:
        open: Whether the socket reports itself as connected.

    Returns:
        MagicMock: Mocked WebSocket instance
    """
    ws_mock = MagicMock(spec=WebSocket)

    ws_mock.send_json = AsyncMock()
    ws_mock.send_text = AsyncMock()
    ws_mock.receive = AsyncMock()
    ws_mock.accept = AsyncMock()
    ws_mock.close = AsyncMock()

    state = WebSocketState.CONNECTED if open else WebSocketState.DISCONNECTED
    ws_mock.client_state = state
    ws_mock.application_state = state

    return ws_mock
