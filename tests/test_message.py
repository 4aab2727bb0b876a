import json

import pytest

from shared.message import (
    DecodeError,
    ListUsersMessage,
    LogoutMessage,
    Message,
    MsgType,
    TextMessage,
    UnknownVariantError,
    decode,
    encode,
)


@pytest.mark.parametrize(
    "message",
    [
        TextMessage("alice", "hi"),
        TextMessage("alice", ""),
        TextMessage("bob", "ünïcödé 'quotes' and \"more\"\nnew line"),
        LogoutMessage("alice"),
        ListUsersMessage("alice", timestamp=1700000000123),
    ],
)
def test_decode_inverts_encode(message):
    decoded = decode(encode(message))

    assert decoded == message
    assert type(decoded) is type(message)
    assert decoded.msg_type is message.msg_type
    assert decoded.timestamp == message.timestamp


def test_msg_type_matches_variant():
    assert TextMessage("a", "x").msg_type is MsgType.TEXT
    assert LogoutMessage("a").msg_type is MsgType.LOGOUT
    assert ListUsersMessage("a").msg_type is MsgType.LISTUSERS


def test_messages_are_immutable():
    message = TextMessage("alice", "hi")
    with pytest.raises(AttributeError):
        message.sender_name = "mallory"
    with pytest.raises(AttributeError):
        message.text = "changed"


def test_empty_sender_rejected_at_construction():
    with pytest.raises(ValueError):
        TextMessage("", "hi")
    with pytest.raises(ValueError):
        LogoutMessage(None)


def test_wire_form_is_self_describing():
    wire = json.loads(encode(TextMessage("alice", "hi", timestamp=42)))

    assert wire == {"type": "TEXT", "sender": "alice", "ts": 42, "payload": {"text": "hi"}}
    assert json.loads(encode(LogoutMessage("alice", timestamp=1)))["payload"] == {}


def test_decode_accepts_text_frames():
    frame = '{"type":"LOGOUT","sender":"alice","ts":5,"payload":{}}'
    assert decode(frame) == LogoutMessage("alice", timestamp=5)


@pytest.mark.parametrize("tag", ["HELLO", "text", "", "LIST_USERS"])
def test_unknown_tag_fails_with_unknown_variant(tag):
    frame = json.dumps({"type": tag, "sender": "alice", "ts": 1, "payload": {}})

    with pytest.raises(UnknownVariantError) as excinfo:
        decode(frame)
    assert excinfo.value.tag == tag


def test_unknown_variant_is_a_decode_error():
    frame = json.dumps({"type": "PING", "sender": "alice", "ts": 1, "payload": {}})
    with pytest.raises(DecodeError):
        decode(frame)


@pytest.mark.parametrize(
    "frame",
    [
        b"not json at all",
        b"\xff\xfe\xfa",
        b"[1, 2, 3]",
        b'{"type":"TEXT","sender":"alice","ts":1}',
        b'{"type":"TEXT","sender":"alice","ts":1,"payload":{}}',
        b'{"type":"TEXT","sender":"alice","ts":1,"payload":{"text":5}}',
        b'{"type":"TEXT","sender":"","ts":1,"payload":{"text":"hi"}}',
        b'{"type":"LOGOUT","sender":"alice","ts":"yesterday","payload":{}}',
        b'{"type":"LOGOUT","sender":"alice","ts":1,"payload":[]}',
        b'{"type":7,"sender":"alice","ts":1,"payload":{}}',
        b'{"type":"TEXT","sender":"alice","ts":1,"payload":{"te',
    ],
)
def test_malformed_frames_fail_with_decode_error(frame):
    with pytest.raises(DecodeError):
        decode(frame)


def test_deeply_nested_json_is_a_decode_error():
    with pytest.raises(DecodeError):
        decode(b"[" * 200000)
    with pytest.raises(DecodeError):
        decode(b'{"type":"TEXT","payload":' + b"[" * 200000)


def test_str_renders_type_sender_and_text():
    assert str(TextMessage("alice", "hi")) == "TEXT from alice: 'hi'"
    assert str(LogoutMessage("alice")) == "LOGOUT from alice"


def test_base_message_cannot_be_built():
    with pytest.raises(TypeError):
        Message("alice")
