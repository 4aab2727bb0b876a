import pytest

from conftest import FakeWebSocket, closed_error
from server.core.ExchangeEngine import GREETING, run_conversation
from shared.message import DecodeError, LogoutMessage, TextMessage, encode
from shared.transport import INCOMING, OUTGOING, ConnectionLink, TransportError


@pytest.mark.asyncio
async def test_send_writes_one_encoded_frame():
    ws = FakeWebSocket()
    link = ConnectionLink(ws, sink=None)
    message = TextMessage("server", "hello")

    await link.send(message)

    assert ws.sent_frames == [encode(message)]


@pytest.mark.asyncio
async def test_receive_decodes_bytes_and_text_frames():
    ws = FakeWebSocket([encode(TextMessage("alice", "a", timestamp=1)),
                        encode(LogoutMessage("alice", timestamp=2)).decode("utf-8")])
    link = ConnectionLink(ws, sink=None)

    assert await link.receive() == TextMessage("alice", "a", timestamp=1)
    assert await link.receive() == LogoutMessage("alice", timestamp=2)


@pytest.mark.asyncio
async def test_closed_peer_raises_transport_error():
    link = ConnectionLink(FakeWebSocket([closed_error()]), sink=None)
    with pytest.raises(TransportError):
        await link.receive()


@pytest.mark.asyncio
async def test_os_error_on_send_raises_transport_error():
    class BrokenSocket(FakeWebSocket):
        async def send(self, data):
            raise ConnectionResetError("peer reset")

    link = ConnectionLink(BrokenSocket(), sink=None)
    with pytest.raises(TransportError):
        await link.send(TextMessage("server", "x"))


@pytest.mark.asyncio
async def test_malformed_frame_raises_decode_error():
    link = ConnectionLink(FakeWebSocket([b"nope"]), sink=None)
    with pytest.raises(DecodeError):
        await link.receive()


@pytest.mark.asyncio
async def test_link_refuses_io_after_close():
    ws = FakeWebSocket()
    link = ConnectionLink(ws)
    await link.close()
    await link.close()

    assert ws.closed is True
    with pytest.raises(TransportError):
        await link.send(TextMessage("server", "late"))
    with pytest.raises(TransportError):
        await link.receive()


@pytest.mark.asyncio
async def test_sink_sees_traffic_with_direction(recording_sink, traffic):
    ws = FakeWebSocket([encode(LogoutMessage("alice"))])

    await run_conversation(ConnectionLink(ws, sink=recording_sink), "server")

    assert [(d, m.msg_type.value) for d, m, _ in traffic] == [
        (OUTGOING, "TEXT"),
        (INCOMING, "LOGOUT"),
        (OUTGOING, "TEXT"),
    ]
    assert traffic[0][1].text == GREETING
    assert {conn for _, _, conn in traffic} == {"127.0.0.1:50000"}


@pytest.mark.asyncio
async def test_failing_sink_does_not_break_the_conversation():
    def broken_sink(direction, message, connection_id):
        raise RuntimeError("sink down")

    ws = FakeWebSocket([encode(TextMessage("alice", "hi")), encode(LogoutMessage("alice"))])

    conversation = await run_conversation(ConnectionLink(ws, sink=broken_sink), "server")

    assert conversation.turns == 2
    assert len(ws.sent_frames) == 3


def test_connection_id_from_remote_address():
    assert ConnectionLink(FakeWebSocket()).connection_id == "127.0.0.1:50000"
    assert ConnectionLink(FakeWebSocket(), connection_id="ws://x:1").connection_id == "ws://x:1"


def test_log_traffic_tags_the_connection(monkeypatch):
    from shared import log

    records = []
    monkeypatch.setattr(log._traffic_logger, "info", lambda *args, **kwargs: records.append(kwargs["extra"]))

    log.log_traffic(OUTGOING, TextMessage("server", "hi"), "127.0.0.1:50000")

    assert records == [{"msg_type": "TEXT", "sender": "server", "connection_id": "127.0.0.1:50000"}]
