from __future__ import annotations
from typing import Optional

import websockets
import websockets.exceptions

from shared.log import get_logger
from shared.message import Message
from shared.transport import ConnectionLink, TrafficSink, TransportError
from shared.utils import validate_participant_name

logger = get_logger(__name__)


class ClientSession:
    """
    clack client session over one WebSocket connection.

    The client never speaks first: after connect() the server's greeting
    is waiting to be received.
    """

    def __init__(self, user_name: str, server_ws_url: str, sink: Optional[TrafficSink] = None) -> None:
        self.user_name = validate_participant_name(user_name)
        self.server_ws_url = server_ws_url
        self.sink = sink
        self.link: Optional[ConnectionLink] = None

    async def connect(self) -> None:
        """Connect to the clack server via WebSocket"""
        try:
            websocket = await websockets.connect(self.server_ws_url, ping_interval=None)
        except (OSError, websockets.exceptions.InvalidHandshake, websockets.exceptions.InvalidURI) as e:
            raise TransportError(f"Cannot connect to {self.server_ws_url}: {e}") from e
        self.link = ConnectionLink(websocket, sink=self.sink, connection_id=self.server_ws_url)
        logger.info(f"Connected to {self.server_ws_url} as {self.user_name}")

    async def send(self, message: Message) -> None:
        await self._require_link().send(message)

    async def receive(self) -> Message:
        return await self._require_link().receive()

    async def close(self) -> None:
        if self.link:
            await self.link.close(reason="Client closed")

    @property
    def closed(self) -> bool:
        return self.link is None or self.link.closed

    def _require_link(self) -> ConnectionLink:
        if self.link is None:
            raise TransportError("Not connected")
        return self.link

    async def __aenter__(self) -> ClientSession:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
