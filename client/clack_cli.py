#!/usr/bin/env python3

from __future__ import annotations
import asyncio
import os
from typing import List, Optional

import aioconsole
import typer
from rich.console import Console
from rich.markup import escape

from shared.log import get_logger
from shared.message import Message, MsgType, ProtocolError, encode
from shared.transport import TransportError
from .client import message_from_input, run_client_conversation
from .ws_client import ClientSession

app = typer.Typer(help="clack client CLI")
console = Console()
logger = get_logger(__name__)


def _default_server() -> str:
    return os.getenv("CLACK_SERVER", "ws://localhost:4466")


def _default_user() -> str:
    return os.getenv("CLACK_USER") or os.getenv("USER") or "client"


def show_message(message: Message) -> None:
    if message.msg_type is MsgType.TEXT:
        console.print(f"[bold cyan]{escape(message.sender_name)}[/]: {escape(message.text)}", highlight=False)  # type: ignore[attr-defined]
    else:
        console.print(f"[dim]{escape(str(message))}[/]")


def _converse(user: str, server: str, lines: Optional[List[str]] = None) -> None:
    async def read_interactive() -> Optional[str]:
        try:
            return await aioconsole.ainput(": ")
        except EOFError:
            return None

    scripted = iter(lines or [])

    async def read_scripted() -> Optional[str]:
        return next(scripted, None)

    try:
        session = ClientSession(user, server)
    except ValueError as e:
        console.print(f"[red]Invalid user name[/]: {escape(str(e))}")
        raise typer.Exit(code=2)

    async def main_loop() -> None:
        await session.connect()
        await run_client_conversation(
            session,
            user,
            read_scripted if lines is not None else read_interactive,
            show_message,
        )

    try:
        asyncio.run(main_loop())
    except (TransportError, ProtocolError) as e:
        console.print(f"[red]Connection ended[/]: {escape(str(e))}")
        raise typer.Exit(code=1)


@app.command()
def run(
    server: str = typer.Option(_default_server(), help="WebSocket URL of the clack server"),
    user: str = typer.Option(_default_user(), help="Name to send messages as"),
):
    """Start an interactive conversation. Type 'logout' to end it."""
    console.print(f"[bold green]clack client starting[/] as {user} on {server}")
    console.print("'listusers' asks for the user list, 'logout' closes the connection.")
    _converse(user, server)


@app.command()
def send(
    lines: List[str] = typer.Argument(..., help="Messages to send, in order"),
    server: str = typer.Option(_default_server(), help="WebSocket URL of the clack server"),
    user: str = typer.Option(_default_user(), help="Name to send messages as"),
):
    """Send each argument as one message, then log out."""
    _converse(user, server, lines)


@app.command("encode")
def encode_message(
    line: str = typer.Argument(..., help="Input line, e.g. 'hello', 'listusers' or 'logout'"),
    user: str = typer.Option(_default_user(), help="Sender name"),
):
    """Print the wire form of the message a line of input turns into."""
    console.print(encode(message_from_input(line, user)).decode("utf-8"), markup=False, highlight=False, soft_wrap=True)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
