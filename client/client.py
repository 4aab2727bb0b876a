"""
clack client side of a conversation.

The client reacts: it waits for the server's greeting, then for each
line the user types it sends one message and waits for the reply. Typing
'logout' (any case) sends a LogoutMessage; the conversation ends once the
server's farewell has been received.
"""

from __future__ import annotations
from typing import Awaitable, Callable, List, Optional, Protocol

from shared.log import get_logger
from shared.message import ListUsersMessage, LogoutMessage, Message, MsgType, TextMessage

logger = get_logger(__name__)

LOGOUT_COMMAND = "logout"
LISTUSERS_COMMAND = "listusers"


class MessageChannel(Protocol):
    async def send(self, message: Message) -> None: ...
    async def receive(self) -> Message: ...
    async def close(self) -> None: ...


# Returns the next input line, or None when input is exhausted (EOF).
LineReader = Callable[[], Awaitable[Optional[str]]]
MessageShower = Callable[[Message], None]


def message_from_input(line: str, user_name: str) -> Message:
    """Map one line of user input to the message the client sends."""
    command = line.strip().lower()
    if command == LOGOUT_COMMAND:
        return LogoutMessage(user_name)
    if command == LISTUSERS_COMMAND:
        return ListUsersMessage(user_name)
    return TextMessage(user_name, line)


async def run_client_conversation(
    channel: MessageChannel,
    user_name: str,
    read_line: LineReader,
    show: MessageShower,
) -> List[Message]:
    """
    Converse until logout. End of input counts as logout so the server
    always gets its terminating message.

    Returns every message received from the server, greeting first.
    """
    received: List[Message] = []
    try:
        greeting = await channel.receive()
        received.append(greeting)
        show(greeting)

        while True:
            line = await read_line()
            if line is None:
                outgoing: Message = LogoutMessage(user_name)
            elif not line.strip():
                continue
            else:
                outgoing = message_from_input(line, user_name)

            await channel.send(outgoing)
            reply = await channel.receive()
            received.append(reply)
            show(reply)

            if outgoing.msg_type is MsgType.LOGOUT:
                break
    finally:
        await channel.close()
    return received
