from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Union
import json
import time


class ProtocolError(Exception):
    """Raised when a peer violates the clack message protocol."""
    pass
class DecodeError(ProtocolError):
    """Raised when bytes do not form a valid message of any known variant."""
    pass
class UnknownVariantError(DecodeError):
    """Raised when a message carries a type tag outside the known set."""

    def __init__(self, tag: Any):
        super().__init__(f"Unknown message type: {tag!r}")
        self.tag = tag


class MsgType(str, Enum):
    """The closed set of message variants. Adding a member requires a new
    entry in every registry keyed by MsgType (encoders, decoders, reply policy)."""

    TEXT = "TEXT"
    LOGOUT = "LOGOUT"
    LISTUSERS = "LISTUSERS"

    @classmethod
    def from_string(cls, value: Any) -> MsgType:
        """Convert string to MsgType, raise UnknownVariantError if unknown."""
        try:
            return cls(value)
        except ValueError:
            raise UnknownVariantError(value) from None


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Message:
    """
    Base for every message exchanged between server and client.

    `sender_name` identifies the participant that built the message and
    `timestamp` is the construction time in unix milliseconds. The type tag
    is fixed by the concrete class and never stored per instance.
    """
    msg_type: ClassVar[MsgType]

    sender_name: str
    timestamp: int = field(default_factory=now_ms, kw_only=True)

    def __post_init__(self) -> None:
        if not hasattr(type(self), "msg_type"):
            raise TypeError("Message is abstract; construct one of its variants")
        if not isinstance(self.sender_name, str) or not self.sender_name:
            raise ValueError("sender_name must be a non-empty string")
        if not isinstance(self.timestamp, int) or isinstance(self.timestamp, bool):
            raise ValueError("timestamp must be an integer (unix ms)")

    def __str__(self) -> str:
        return f"{self.msg_type.value} from {self.sender_name}"


@dataclass(frozen=True)
class TextMessage(Message):
    msg_type: ClassVar[MsgType] = MsgType.TEXT

    text: str

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.text, str):
            raise ValueError("text must be a string")

    def __str__(self) -> str:
        return f"{super().__str__()}: '{self.text}'"


@dataclass(frozen=True)
class LogoutMessage(Message):
    """Its arrival ends the conversation."""
    msg_type: ClassVar[MsgType] = MsgType.LOGOUT


@dataclass(frozen=True)
class ListUsersMessage(Message):
    """Client request for the list of connected users."""
    msg_type: ClassVar[MsgType] = MsgType.LISTUSERS


# ========================================
#           WIRE ENCODING
# ========================================
"""
Each message travels as one UTF-8 JSON object:
{
  "type":    "TEXT" | "LOGOUT" | "LISTUSERS",
  "sender":  "STRING",
  "ts":      "INT (unix ms)",
  "payload": { ... }   # {"text": ...} for TEXT, {} otherwise
}
"""

PayloadEncoder = Callable[[Message], Dict[str, Any]]
PayloadDecoder = Callable[[str, int, Dict[str, Any]], Message]


def _decode_text(sender: str, ts: int, payload: Dict[str, Any]) -> Message:
    text = payload.get("text")
    if not isinstance(text, str):
        raise DecodeError("TEXT payload requires a string 'text' field")
    return TextMessage(sender, text, timestamp=ts)


_ENCODERS: Dict[MsgType, PayloadEncoder] = {
    MsgType.TEXT: lambda m: {"text": m.text},  # type: ignore[attr-defined]
    MsgType.LOGOUT: lambda m: {},
    MsgType.LISTUSERS: lambda m: {},
}

_DECODERS: Dict[MsgType, PayloadDecoder] = {
    MsgType.TEXT: _decode_text,
    MsgType.LOGOUT: lambda sender, ts, payload: LogoutMessage(sender, timestamp=ts),
    MsgType.LISTUSERS: lambda sender, ts, payload: ListUsersMessage(sender, timestamp=ts),
}


def check_exhaustive(registry: Dict[MsgType, Any], name: str) -> None:
    """Fail at import time when a registry misses a MsgType member."""
    missing = set(MsgType) - set(registry)
    if missing:
        names = ", ".join(sorted(t.value for t in missing))
        raise RuntimeError(f"{name} has no entry for: {names}")


check_exhaustive(_ENCODERS, "message encoders")
check_exhaustive(_DECODERS, "message decoders")


def to_dict(message: Message) -> Dict[str, Any]:
    return {
        "type": message.msg_type.value,
        "sender": message.sender_name,
        "ts": message.timestamp,
        "payload": _ENCODERS[message.msg_type](message),
    }


def encode(message: Message) -> bytes:
    """Encode a message into its self-describing wire form."""
    return json.dumps(to_dict(message), separators=(",", ":"), sort_keys=True).encode("utf-8")


def from_dict(data: Any) -> Message:
    """Build a message from a parsed wire object, validating its structure"""
    if not isinstance(data, dict):
        raise DecodeError("Message must be a JSON object")

    required_fields = {"type", "sender", "ts", "payload"}
    missing = required_fields - set(data.keys())
    if missing:
        raise DecodeError(f"Missing required fields: {sorted(missing)}")

    if not isinstance(data["type"], str):
        raise DecodeError("'type' must be a string")
    if not isinstance(data["sender"], str) or not data["sender"]:
        raise DecodeError("'sender' must be a non-empty string")
    if not isinstance(data["ts"], int) or isinstance(data["ts"], bool):
        raise DecodeError("'ts' must be an integer")
    if not isinstance(data["payload"], dict):
        raise DecodeError("'payload' must be an object")

    msg_type = MsgType.from_string(data["type"])
    return _DECODERS[msg_type](data["sender"], data["ts"], data["payload"])


def decode(data: Union[bytes, str]) -> Message:
    """Decode exactly one message from its wire form."""
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Invalid UTF-8: {e}") from e
    try:
        parsed = json.loads(data)
    except (json.JSONDecodeError, RecursionError) as e:
        raise DecodeError(f"Invalid JSON: {e}") from e
    return from_dict(parsed)
