"""Socket.IO transport channel.

One channel per connected client (``sid``) of a python-socketio
``AsyncServer``. Terminal traffic travels as the ``data`` event in both
directions. Inbound events are routed to the channel by the listener
that owns the server.
"""

from __future__ import annotations

import logging

import socketio

from ptybridge.transport.base import TransportChannel

logger = logging.getLogger(__name__)

DATA_EVENT = "data"


class SocketIOChannel(TransportChannel):
    """Transport channel for one Socket.IO client."""

    kind = "socketio"

    def __init__(self, server: socketio.AsyncServer, sid: str, event: str = DATA_EVENT) -> None:
        super().__init__()
        self._server = server
        self._sid = sid
        self._event = event

    @property
    def sid(self) -> str:
        return self._sid

    async def _send_frame(self, text: str) -> None:
        await self._server.emit(self._event, text, to=self._sid)

    async def _shutdown(self, graceful: bool) -> None:
        # Socket.IO has no abrupt variant; queued frames were already
        # discarded by close() when graceful is False.
        await self._server.disconnect(self._sid)
        logger.debug("Socket.IO client %s disconnected by server", self._sid)
