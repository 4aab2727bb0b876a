from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict

from shared.config import DEFAULT_SERVERNAME
from shared.log import get_logger
from shared.message import (
    Message,
    MsgType,
    TextMessage,
    UnknownVariantError,
    check_exhaustive,
)

if TYPE_CHECKING:
    from shared.transport import ConnectionLink

logger = get_logger(__name__)

# For strings sent to client.
GREETING = "[Server listening. 'Logout' (case insensitive) closes connection.]"
GOOD_BYE = "[Closing connection, good-bye.]"
LISTUSERS_REPLY = "LISTUSERS requested"


class SessionState(str, Enum):
    """Per-connection conversation states."""
    AWAITING_CONNECTION = "awaiting_connection"  # owned by the listener
    GREETING = "greeting"
    AWAITING_MESSAGE = "awaiting_message"
    REPLYING = "replying"
    TERMINATING = "terminating"                  # only after the LOGOUT reply is sent
    CLOSED = "closed"


# ========================================
#           REPLY POLICY
# ========================================

# Type alias for reply builders: (received message, server identity) -> reply
ReplyBuilder = Callable[[Message, str], TextMessage]


def _reply_text(message: Message, server_identity: str) -> TextMessage:
    assert isinstance(message, TextMessage)
    return TextMessage(server_identity, f"TEXT: '{message.text}'")


def _reply_logout(message: Message, server_identity: str) -> TextMessage:
    return TextMessage(server_identity, GOOD_BYE)


def _reply_listusers(message: Message, server_identity: str) -> TextMessage:
    # No user registry is kept; the reply is a fixed acknowledgement.
    return TextMessage(server_identity, LISTUSERS_REPLY)


REPLY_POLICY: Dict[MsgType, ReplyBuilder] = {
    MsgType.LISTUSERS: _reply_listusers,
    MsgType.LOGOUT: _reply_logout,
    MsgType.TEXT: _reply_text,
}

check_exhaustive(REPLY_POLICY, "reply policy")


def reply_for(message: Message, server_identity: str) -> TextMessage:
    """Compute the server's reply, keyed on the received message's type only."""
    builder = REPLY_POLICY.get(message.msg_type)
    if builder is None:
        raise UnknownVariantError(message.msg_type)
    return builder(message, server_identity)


# ========================================
#           CONVERSATION
# ========================================

class Conversation:
    """
    Drives one conversation over one link, from greeting to close.

    The server speaks first with GREETING, then strictly alternates:
    receive one message, send its reply. The loop ends after the reply
    to a LogoutMessage has been sent, and the link is closed.

    Any TransportError or DecodeError is fatal for this conversation:
    no reply is sent for the failed receive, the link is closed and
    the error propagates to the caller.
    """

    def __init__(self, link: "ConnectionLink", server_identity: str = DEFAULT_SERVERNAME):
        if not isinstance(server_identity, str) or not server_identity:
            raise ValueError("server_identity must be a non-empty string")
        self.link = link
        self.server_identity = server_identity
        self.state = SessionState.AWAITING_CONNECTION
        self.turns = 0
        self.active = False

    async def run(self) -> "Conversation":
        if self.state is not SessionState.AWAITING_CONNECTION:
            raise RuntimeError(f"Conversation already started (state={self.state.value})")
        self.active = True
        try:
            self.state = SessionState.GREETING
            await self.link.send(TextMessage(self.server_identity, GREETING))

            while True:
                self.state = SessionState.AWAITING_MESSAGE
                received = await self.link.receive()

                self.state = SessionState.REPLYING
                await self.link.send(reply_for(received, self.server_identity))
                self.turns += 1

                if received.msg_type is MsgType.LOGOUT:
                    self.state = SessionState.TERMINATING
                    logger.info(f"=== Terminating connection {self.link.connection_id}. ===")
                    break
        except Exception as e:
            logger.warning(f"Conversation on {self.link.connection_id} aborted in state {self.state.value}: {e}")
            raise
        finally:
            await self.link.close()
            self.state = SessionState.CLOSED
            self.active = False
        return self


async def run_conversation(link: "ConnectionLink", server_identity: str = DEFAULT_SERVERNAME) -> Conversation:
    """Run one full conversation on `link` and return its final record."""
    return await Conversation(link, server_identity).run()
