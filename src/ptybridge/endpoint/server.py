"""ASGI application serving browser terminals.

Requests are dispatched by path before they reach FastAPI: paths owned
by the Socket.IO listener go to its engine, WebSocket upgrades owned by
the WebSocket listener start a terminal session, and everything else
(health checks) is served by a small FastAPI app.
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI, WebSocket
from pydantic import BaseModel

from ptybridge import __version__
from ptybridge.bridge.session import SessionCounter
from ptybridge.config.settings import Settings
from ptybridge.endpoint.listeners import (
    SocketIoToPty,
    TerminalSpawner,
    WebSocketToPty,
    pty_spawner,
)

logger = logging.getLogger(__name__)


class BridgeStatus(BaseModel):
    status: str = "ok"
    socketio_path: str | None = None
    websocket_enabled: bool = True


class PathRouter:
    """ASGI app that hands each request to the listener owning its path."""

    def __init__(
        self,
        app: FastAPI,
        socketio_listener: SocketIoToPty | None = None,
        websocket_listener: WebSocketToPty | None = None,
    ) -> None:
        self.app = app
        self.socketio_listener = socketio_listener
        self.websocket_listener = websocket_listener

    async def __call__(self, scope, receive, send) -> None:
        scope_type = scope["type"]
        if scope_type == "http":
            logger.debug("%s %s", scope["method"], scope["path"])

        if scope_type in ("http", "websocket"):
            path = scope["path"]
            if self.socketio_listener is not None and self.socketio_listener.is_path_proxied(path):
                await self.socketio_listener.app(scope, receive, send)
                return
            if (
                scope_type == "websocket"
                and self.websocket_listener is not None
                and self.websocket_listener.is_path_proxied(path)
            ):
                await self.websocket_listener.handle(WebSocket(scope, receive, send))
                return

        await self.app(scope, receive, send)


def create_app(
    settings: Settings | None = None,
    spawn_terminal: TerminalSpawner | None = None,
    counter: SessionCounter | None = None,
) -> PathRouter:
    """Create the terminal bridge application.

    Args:
        settings: Configuration; defaults to ``Settings()``.
        spawn_terminal: Coroutine factory for terminals (for testing);
                        defaults to the configured pty command.
        counter: Session id source (for testing); defaults to the
                 process-wide counter.
    """
    settings = settings or Settings()
    spawn_terminal = spawn_terminal or pty_spawner(settings.terminal)

    socketio_listener = None
    if settings.socketio.enabled:
        socketio_listener = SocketIoToPty(
            settings.socketio.path,
            spawn_terminal,
            flow_control=settings.flow_control,
            counter=counter,
            ping_timeout=settings.socketio.ping_timeout,
            ping_interval=settings.socketio.ping_interval,
        )

    websocket_listener = None
    if settings.websocket.enabled:
        websocket_listener = WebSocketToPty(
            spawn_terminal,
            flow_control=settings.flow_control,
            counter=counter,
            path=settings.websocket.path,
        )

    app = FastAPI(
        title="ptybridge",
        description="Browser terminal bridge over Socket.IO and WebSocket",
        version=__version__,
    )

    @app.get("/health")
    async def health_check() -> BridgeStatus:
        return BridgeStatus(
            status="ok",
            socketio_path=socketio_listener.path if socketio_listener else None,
            websocket_enabled=websocket_listener is not None,
        )

    return PathRouter(app, socketio_listener, websocket_listener)


def main() -> None:
    """Entry point for running the bridge standalone with defaults."""
    settings = Settings()
    uvicorn.run(create_app(settings), host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
