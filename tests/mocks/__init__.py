from tests.mocks.websocket_mocks import create_mock_websocket

__all__ = ["create_mock_websocket"]
