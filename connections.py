import asyncio
import json
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Connection:
    id: str
    websocket: WebSocket
    room_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )


class ConnectionRegistry:
    """
    Live WebSocket connections, bucketed by room tag.

    A connection carries at most one room tag. Broadcasts only look at the
    bucket of the target room, so a payload for one room can never reach a
    connection tagged with another.
    """

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}
        # Format: {room_id: {connection_id: Connection}}
        self._rooms: Dict[str, Dict[str, Connection]] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def connect(self, websocket: WebSocket, connection_id: Optional[str] = None) -> Connection:
        """Register an accepted websocket under a fresh id, without a room tag."""
        connection = Connection(id=connection_id or str(uuid.uuid4()), websocket=websocket)
        self._connections[connection.id] = connection
        logger.debug(f"Registered connection {connection.id} (live connections: {len(self._connections)})")
        return connection

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def members(self, room_id: str) -> List[Connection]:
        return list(self._rooms.get(room_id, {}).values())

    def rooms(self) -> List[str]:
        return list(self._rooms)

    def _leave_room(self, connection: Connection) -> None:
        room_id = connection.room_id
        if room_id is None:
            return
        bucket = self._rooms.get(room_id)
        if bucket is not None:
            bucket.pop(connection.id, None)
            if not bucket:
                del self._rooms[room_id]
                logger.debug(f"No more connections in room {room_id}, dropping bucket")
        connection.room_id = None

    def join(self, connection_id: str, room_id: str) -> Connection:
        """Tag a connection with ``room_id``. A later join replaces the earlier tag."""
        connection = self._connections.get(connection_id)
        if connection is None:
            raise KeyError(f"Unknown connection {connection_id}")
        if connection.room_id == room_id:
            logger.debug(f"Connection {connection_id} already in room {room_id}")
            return connection

        previous = connection.room_id
        self._leave_room(connection)
        connection.room_id = room_id
        self._rooms.setdefault(room_id, {})[connection_id] = connection
        if previous:
            logger.info(f"Connection {connection_id} moved from room {previous} to {room_id}")
        else:
            logger.info(f"Connection {connection_id} joined room {room_id} (members: {len(self._rooms[room_id])})")
        return connection

    def remove(self, connection_id: str) -> Optional[Connection]:
        """Forget a connection. Returns it, or None if it was never registered."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return None
        room_id = connection.room_id
        self._leave_room(connection)
        # keep the last tag on the returned object so callers can notify the room
        connection.room_id = room_id
        logger.debug(f"Removed connection {connection_id} (live connections: {len(self._connections)})")
        return connection

    async def broadcast(self, origin_id: Optional[str], room_id: str, payload: Dict[str, Any]) -> int:
        """
        Send ``payload`` to every open connection in ``room_id`` except ``origin_id``.

        Sends run concurrently. A failed send is logged and skipped; it is not
        retried and does not affect the other recipients.

        Returns:
            Number of connections the payload was handed to.
        """
        recipients = [
            connection
            for connection in self.members(room_id)
            if connection.id != origin_id and connection.is_open
        ]
        if not recipients:
            logger.debug(f"No recipients for broadcast in room {room_id}")
            return 0

        message = json.dumps(payload)

        async def safe_send(connection: Connection) -> bool:
            try:
                await connection.websocket.send_text(message)
                return True
            except (WebSocketDisconnect, ConnectionError, RuntimeError) as e:
                logger.warning(f"Failed to send to connection {connection.id} in room {room_id}: {e}")
            except Exception as e:
                logger.warning(f"Unexpected error sending to connection {connection.id} in room {room_id}: {e}")
            return False

        results = await asyncio.gather(*[safe_send(connection) for connection in recipients])
        delivered = sum(1 for sent in results if sent)
        logger.debug(f"Broadcast {payload.get('type', 'unknown')} to {delivered}/{len(recipients)} connections in room {room_id}")
        return delivered

    def clear(self) -> None:
        logger.info(f"Clearing ConnectionRegistry ({len(self._connections)} connections)")
        self._connections.clear()
        self._rooms.clear()
