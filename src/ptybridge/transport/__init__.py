"""Transport channel module for ptybridge.

A transport channel carries text frames between the bridge and one
browser client. The abstract interface hides whether frames travel over
a polling Socket.IO connection or a raw WebSocket.

Public API:
    TransportChannel -- Abstract base class
    SocketIOChannel -- python-socketio implementation
    WebSocketChannel -- Starlette WebSocket implementation
"""

from ptybridge.transport.base import TransportChannel

__all__ = ["TransportChannel", "SocketIOChannel", "WebSocketChannel"]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "SocketIOChannel":
        from ptybridge.transport.socketio_channel import SocketIOChannel
        return SocketIOChannel
    if name == "WebSocketChannel":
        from ptybridge.transport.websocket_channel import WebSocketChannel
        return WebSocketChannel
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
