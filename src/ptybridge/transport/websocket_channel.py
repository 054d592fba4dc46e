"""Raw WebSocket transport channel.

Wraps an accepted Starlette/FastAPI ``WebSocket``. Each text frame is one
message; binary frames are decoded as UTF-8. No sub-protocol is
negotiated.
"""

from __future__ import annotations

import logging

from fastapi import WebSocket, WebSocketDisconnect, status

from ptybridge.transport.base import TransportChannel

logger = logging.getLogger(__name__)


class WebSocketChannel(TransportChannel):
    """Transport channel over a single accepted WebSocket.

    The owner must call ``run()`` after wiring callbacks; it reads frames
    until the client disconnects and only returns once the channel is
    closed.
    """

    kind = "websocket"

    def __init__(self, websocket: WebSocket) -> None:
        super().__init__()
        self._websocket = websocket

    async def run(self) -> None:
        """Deliver inbound frames until the connection ends."""
        try:
            while not self.is_closed:
                message = await self._websocket.receive()
                if message["type"] == "websocket.disconnect":
                    code = message.get("code", status.WS_1000_NORMAL_CLOSURE)
                    self.notify_closed(f"client disconnected (code {code})")
                    break
                text = message.get("text")
                if text is None and message.get("bytes") is not None:
                    text = message["bytes"].decode("utf-8", errors="replace")
                if text is not None:
                    self.dispatch_frame(text)
        except (WebSocketDisconnect, RuntimeError) as e:
            self.notify_closed(f"connection lost: {e}")
        finally:
            self.notify_closed("connection ended")
            await self.wait_closed()

    async def _send_frame(self, text: str) -> None:
        await self._websocket.send_text(text)

    async def _shutdown(self, graceful: bool) -> None:
        code = status.WS_1000_NORMAL_CLOSURE if graceful else status.WS_1001_GOING_AWAY
        await self._websocket.close(code=code)
        logger.debug("WebSocket closed with code %d", code)
