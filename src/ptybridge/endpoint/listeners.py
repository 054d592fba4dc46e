"""Connection listeners that start one terminal session per client.

Two listeners exist, one per transport kind. Each spawns a terminal for
every accepted connection and hands both ends to a self-owning
:class:`~ptybridge.bridge.session.Session`. Each also answers whether a
request path belongs to it, so a router in front of them can dispatch.
"""

from __future__ import annotations

import json
import logging
from typing import Awaitable, Callable

import socketio
from fastapi import WebSocket, status

from ptybridge.bridge.session import PROCESS_SESSION_COUNTER, Session, SessionCounter
from ptybridge.config.settings import FlowControlConfig, TerminalConfig
from ptybridge.terminal.base import TerminalProcess, TerminalSpawnError
from ptybridge.transport.base import TransportChannel
from ptybridge.transport.socketio_channel import DATA_EVENT, SocketIOChannel
from ptybridge.transport.websocket_channel import WebSocketChannel
from ptybridge.utils.logging import ENGINEIO_LOGGER, SOCKETIO_LOGGER

logger = logging.getLogger(__name__)

TerminalSpawner = Callable[[], Awaitable[TerminalProcess]]


def pty_spawner(config: TerminalConfig) -> TerminalSpawner:
    """Build a spawner that starts the configured command on a new pty."""
    from ptybridge.terminal.pty_process import PtyProcess

    async def spawn() -> TerminalProcess:
        return await PtyProcess.spawn(
            config.command,
            cwd=config.cwd,
            name=config.term_name,
            cols=config.cols,
            rows=config.rows,
        )

    return spawn


class _Listener:
    """Shared session construction for both listeners."""

    def __init__(
        self,
        spawn_terminal: TerminalSpawner,
        flow_control: FlowControlConfig | None = None,
        counter: SessionCounter | None = None,
    ) -> None:
        self._spawn_terminal = spawn_terminal
        self._flow_control = flow_control or FlowControlConfig()
        self._counter = counter or PROCESS_SESSION_COUNTER

    def _start_session(self, channel: TransportChannel, terminal: TerminalProcess) -> Session:
        return Session(
            channel,
            terminal,
            ack_threshold=self._flow_control.ack_threshold,
            high_watermark=self._flow_control.high_watermark,
            low_watermark=self._flow_control.low_watermark,
            counter=self._counter,
        )


class SocketIoToPty(_Listener):
    """Serves terminals over polling-only Socket.IO.

    Upgrades to WebSocket are disabled, and the ping timeout is long so
    that idle clients are not disconnected spuriously. Mount :attr:`app`
    for every path where :meth:`is_path_proxied` is true.
    """

    def __init__(
        self,
        path: str,
        spawn_terminal: TerminalSpawner,
        flow_control: FlowControlConfig | None = None,
        counter: SessionCounter | None = None,
        ping_timeout: int = 60,
        ping_interval: int = 25,
    ) -> None:
        super().__init__(spawn_terminal, flow_control, counter)
        self.path = "/" + path.strip("/")
        self.server = socketio.AsyncServer(
            async_mode="asgi",
            transports=["polling"],
            allow_upgrades=False,
            ping_timeout=ping_timeout,
            ping_interval=ping_interval,
            # Events of one client must reach its session in arrival order.
            async_handlers=False,
            logger=logging.getLogger(SOCKETIO_LOGGER),
            engineio_logger=logging.getLogger(ENGINEIO_LOGGER),
        )
        self.app = socketio.ASGIApp(self.server, socketio_path=self.path)
        # Routing table for inbound events; sessions own themselves.
        self._channels: dict[str, SocketIOChannel] = {}

        self.server.on("connect", self._on_connect)
        self.server.on("disconnect", self._on_disconnect)
        self.server.on(DATA_EVENT, self._on_data)

    def is_path_proxied(self, path: str) -> bool:
        """Return True iff path is handled by Socket.IO."""
        return path.startswith(self.path + "/")

    async def _on_connect(self, sid: str, environ: dict, auth: object = None) -> bool:
        try:
            terminal = await self._spawn_terminal()
        except TerminalSpawnError as e:
            logger.error("Rejecting Socket.IO client %s: %s", sid, e)
            return False

        channel = SocketIOChannel(self.server, sid)
        self._channels[sid] = channel
        channel.on_close(lambda reason: self._channels.pop(sid, None))
        session = self._start_session(channel, terminal)
        logger.debug("Socket.IO client %s attached to session %d", sid, session.id)
        return True

    async def _on_disconnect(self, sid: str, reason: object = None) -> None:
        channel = self._channels.pop(sid, None)
        if channel is not None:
            channel.notify_closed(str(reason) if reason is not None else "client disconnected")

    async def _on_data(self, sid: str, data: object) -> None:
        channel = self._channels.get(sid)
        if channel is None:
            logger.debug("Ignoring data from unknown Socket.IO client %s", sid)
            return
        if isinstance(data, bytes):
            data = data.decode("utf-8", errors="replace")
        elif not isinstance(data, str):
            # Some clients emit the decoded object; re-encode so the
            # session sees the same text frame either way.
            data = json.dumps(data)
        channel.dispatch_frame(data)


class WebSocketToPty(_Listener):
    """Serves terminals over raw WebSockets.

    Accepts the upgrade on any path (or only below ``path`` when given)
    without sub-protocol negotiation.
    """

    def __init__(
        self,
        spawn_terminal: TerminalSpawner,
        flow_control: FlowControlConfig | None = None,
        counter: SessionCounter | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(spawn_terminal, flow_control, counter)
        self.path = "/" + path.strip("/") if path else None

    def is_path_proxied(self, path: str) -> bool:
        """Return True iff a WebSocket upgrade on path is handled here."""
        if self.path is None:
            return True
        return path == self.path or path.startswith(self.path + "/")

    async def handle(self, websocket: WebSocket) -> None:
        """Run one terminal session for the lifetime of the connection."""
        await websocket.accept()
        try:
            terminal = await self._spawn_terminal()
        except TerminalSpawnError as e:
            logger.error("Closing WebSocket on %s: %s", websocket.url.path, e)
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason="terminal unavailable")
            return

        channel = WebSocketChannel(websocket)
        session = self._start_session(channel, terminal)
        logger.debug("WebSocket on %s attached to session %d", websocket.url.path, session.id)
        await channel.run()
