#!/usr/bin/env python3

from __future__ import annotations
import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

import typer
import websockets

from server.core.ExchangeEngine import Conversation
from shared.config import ClackConfig, load_config
from shared.log import configure_root_logging, get_logger, log_traffic
from shared.message import ProtocolError
from shared.transport import ConnectionLink, TransportError

# Configure Logging
logger = get_logger(__name__)


class ClackServer:
    """
    Listener that hands each accepted WebSocket connection to the exchange
    engine. Only one conversation is active at a time: later connections
    wait on `_conversation_lock` until the current one has closed.
    """

    def __init__(self, config: Optional[ClackConfig] = None):
        self.config = config or ClackConfig()
        self.host = self.config.host
        self.port = self.config.port
        self.server_name = self.config.server_name

        self._conversation_lock = asyncio.Lock()
        self.current: Optional[Conversation] = None
        self.sessions_completed = 0
        self.sessions_failed = 0

        logger.info(f"Initialized clack server '{self.server_name}'")

    async def start_server(self) -> None:
        """Start the WebSocket server and serve until cancelled"""
        logger.info(f"Server starting on port {self.port}.")

        async with websockets.serve(
            self.handle_connection,
            self.host,
            self.port,
            ping_interval=None,  # no protocol-level timeouts
        ):
            logger.info(f"clack server listening on {self.config.server_url}")
            logger.info("Ctrl + C to exit.")
            try:
                await asyncio.Future()  # Run forever
            except asyncio.CancelledError:
                logger.info("Server task cancelled")
                raise

    async def handle_connection(self, websocket: Any) -> None:
        """Run one conversation per connection, one connection at a time."""
        remote_addr = getattr(websocket, "remote_address", None)
        logger.info(f"New connection from {remote_addr}")

        async with self._conversation_lock:
            sink = log_traffic if self.config.show_traffic else None
            link = ConnectionLink(websocket, sink=sink)
            try:
                self.current = Conversation(link, self.server_name)
                await self.current.run()
                self.sessions_completed += 1
                logger.info(f"Conversation with {link.connection_id} finished after {self.current.turns} turns")
            except (ProtocolError, TransportError) as e:
                # Fatal for this session only; keep accepting new connections.
                self.sessions_failed += 1
                logger.error(f"Session with {link.connection_id} failed: {type(e).__name__}: {e}")
            finally:
                self.current = None

    def get_status(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "server_name": self.server_name,
            "active": self.current is not None and self.current.active,
            "sessions_completed": self.sessions_completed,
            "sessions_failed": self.sessions_failed,
        }


app = typer.Typer(help="clack conversational message server")


@app.command()
def main(
    host: Optional[str] = typer.Option(None, help="Interface to listen on"),
    port: Optional[int] = typer.Option(None, help="Port to listen on (1024-49151)"),
    name: Optional[str] = typer.Option(None, "--name", help="Sender name used for server messages"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False, help="YAML config file"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Do not log the messages sent and received"),
    log_level: Optional[str] = typer.Option(None, help="DEBUG, INFO, WARNING or ERROR"),
):
    """Start the server and converse with one client at a time."""
    try:
        cfg = load_config(config, host=host, port=port, server_name=name,
                          show_traffic=False if quiet else None, log_level=log_level)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)

    configure_root_logging(cfg.log_level)
    server = ClackServer(cfg)
    try:
        asyncio.run(server.start_server())
    except KeyboardInterrupt:
        logger.info("Server stopped")


if __name__ == "__main__":
    app()
