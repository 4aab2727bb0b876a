import asyncio
from typing import Any, Iterable, List, Optional

import pytest
import websockets
import websockets.exceptions

from shared.message import Message, decode


def closed_error() -> websockets.exceptions.ConnectionClosedError:
    return websockets.exceptions.ConnectionClosedError(None, None)


class FakeWebSocket:
    """In-memory stand-in for a websockets connection.

    Frames queued with feed() are returned by recv() in order; an exception
    instance in the queue is raised instead. recv() blocks while the queue
    is empty, like a real connection waiting for the peer.
    """

    def __init__(self, incoming: Iterable[Any] = (), fail_send_on: Optional[int] = None) -> None:
        self.incoming: asyncio.Queue = asyncio.Queue()
        for item in incoming:
            self.incoming.put_nowait(item)
        self.sent_frames: List[Any] = []
        self.recv_calls = 0
        self.fail_send_on = fail_send_on
        self.closed = False
        self.close_code: Optional[int] = None
        self.remote_address = ("127.0.0.1", 50000)

    def feed(self, item: Any) -> None:
        self.incoming.put_nowait(item)

    async def send(self, data: Any) -> None:
        if self.closed:
            raise websockets.exceptions.ConnectionClosedOK(None, None)
        if self.fail_send_on is not None and len(self.sent_frames) + 1 == self.fail_send_on:
            raise closed_error()
        self.sent_frames.append(data)

    async def recv(self) -> Any:
        self.recv_calls += 1
        item = await self.incoming.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        self.closed = True
        self.close_code = code

    @property
    def sent(self) -> List[Message]:
        return [decode(frame) for frame in self.sent_frames]


@pytest.fixture
def traffic() -> List[tuple]:
    return []


@pytest.fixture
def recording_sink(traffic):
    def sink(direction: str, message: Message, connection_id: str) -> None:
        traffic.append((direction, message, connection_id))
    return sink
