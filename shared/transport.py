from __future__ import annotations

from typing import Any, Callable, Optional

import websockets
import websockets.exceptions

from shared.log import get_logger, log_traffic
from shared.message import Message, decode, encode

logger = get_logger(__name__)

# Observability sink: receives ("=>" | "<=", message, connection_id) for every message on the link.
TrafficSink = Callable[[str, Message, str], None]

OUTGOING = "=>"
INCOMING = "<="


class TransportError(Exception):
    """Raised when the underlying channel fails to send, receive or close."""
    pass


class ConnectionLink:
    """Wrapper around one WebSocket connection carrying clack messages.

    Every send and receive moves exactly one whole message (one frame).
    Channel failures surface as TransportError; malformed frames surface
    as DecodeError from the message model.
    """

    def __init__(self, websocket: Any, sink: Optional[TrafficSink] = log_traffic, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.sink = sink
        self.connection_id = connection_id or _describe_peer(websocket)
        self.closed = False

    async def send(self, message: Message) -> None:
        """Encode and send one message; returns once the frame is handed to the transport."""
        if self.closed:
            raise TransportError(f"Cannot send {message.msg_type.value}: link already closed")
        data = encode(message)
        try:
            await self.websocket.send(data)
        except websockets.exceptions.ConnectionClosed as e:
            raise TransportError(f"Connection closed while sending {message.msg_type.value}: {e}") from e
        except OSError as e:
            raise TransportError(f"Error sending {message.msg_type.value}: {e}") from e
        self._mirror(OUTGOING, message)

    async def receive(self) -> Message:
        """Block until one message arrives and decode it."""
        if self.closed:
            raise TransportError("Cannot receive: link already closed")
        try:
            data = await self.websocket.recv()
        except websockets.exceptions.ConnectionClosed as e:
            raise TransportError(f"Connection closed while receiving: {e}") from e
        except OSError as e:
            raise TransportError(f"Error receiving: {e}") from e
        message = decode(data)
        self._mirror(INCOMING, message)
        return message

    async def close(self, reason: str = "Conversation finished") -> None:
        """Close the WebSocket connection. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        try:
            await self.websocket.close(code=1000, reason=reason)
        except (websockets.exceptions.WebSocketException, OSError) as e:
            logger.error(f"Error closing connection {self.connection_id}: {e}")

    def _mirror(self, direction: str, message: Message) -> None:
        if self.sink is None:
            return
        try:
            self.sink(direction, message, self.connection_id)
        except Exception as e:
            logger.error(f"Traffic sink failed on {direction} {message.msg_type.value}: {e}")


def _describe_peer(websocket: Any) -> str:
    remote = getattr(websocket, "remote_address", None)
    if isinstance(remote, tuple) and len(remote) >= 2:
        return f"{remote[0]}:{remote[1]}"
    return "local"
