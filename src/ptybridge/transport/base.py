"""Abstract base class for transport channels.

All transport implementations must conform to this interface, enabling
a terminal session to run unchanged over a polling Socket.IO connection
or a raw WebSocket. The session never branches on the transport kind.

The base class owns the behavior every transport shares: an ordered
outbound queue drained by a single writer task, in-order delivery of
inbound frames, and a close notification that fires exactly once.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)

ReceiveCallback = Callable[[str], None]
CloseCallback = Callable[[str], None]

# Queue marker that tells the writer task to shut the transport down.
_CLOSE = object()


class TransportChannel(ABC):
    """Bidirectional text-frame channel to one browser client.

    ``send()`` and ``close()`` never block: frames are queued and written
    by a background task in call order. Inbound frames are handed to the
    receive callbacks by the concrete adapter, one at a time and in
    arrival order.

    Example usage::

        channel.on_receive(lambda text: print("got", text))
        channel.on_close(lambda reason: print("closed:", reason))
        channel.send('{"data": "hello"}')
        channel.close(graceful=False)
    """

    kind: str = "abstract"

    def __init__(self) -> None:
        self._receive_callbacks: list[ReceiveCallback] = []
        self._close_callbacks: list[CloseCallback] = []
        self._outbox: asyncio.Queue[object] = asyncio.Queue()
        self._writer: asyncio.Task[None] | None = None
        self._closing = False
        self._graceful = True
        self._close_reason: str | None = None

    @property
    def is_closed(self) -> bool:
        """Whether the close notification has already fired."""
        return self._close_reason is not None

    @property
    def close_reason(self) -> str | None:
        return self._close_reason

    def send(self, text: str) -> None:
        """Queue one text frame for transmission.

        Best effort: frames sent after ``close()`` are dropped, and a
        transport failure while writing surfaces as a close event.
        """
        if self._closing:
            logger.debug("Dropping %d chars sent on closing %s channel", len(text), self.kind)
            return
        self._outbox.put_nowait(text)
        self._ensure_writer()

    def on_receive(self, callback: ReceiveCallback) -> None:
        """Register a callback invoked once per inbound frame."""
        self._receive_callbacks.append(callback)

    def on_close(self, callback: CloseCallback) -> None:
        """Register a callback invoked once when the channel closes.

        If the channel is already closed the callback runs immediately
        with the recorded reason.
        """
        if self._close_reason is not None:
            callback(self._close_reason)
            return
        self._close_callbacks.append(callback)

    def close(self, graceful: bool = True) -> None:
        """Close the channel. Safe to call multiple times.

        Args:
            graceful: When True, frames already queued are flushed before
                      the transport closes normally. When False, queued
                      frames are discarded and the transport is closed
                      abruptly.
        """
        if self._closing:
            return
        self._closing = True
        self._graceful = graceful
        if not graceful:
            dropped = 0
            while not self._outbox.empty():
                self._outbox.get_nowait()
                dropped += 1
            if dropped:
                logger.debug("Discarded %d queued frames on abrupt %s close", dropped, self.kind)
        self._outbox.put_nowait(_CLOSE)
        self._ensure_writer()

    def dispatch_frame(self, text: str) -> None:
        """Hand one inbound frame to the receive callbacks.

        Called by the concrete adapter (or its listener) for every frame
        read from the transport. Frames arriving after closure are ignored.
        """
        if self._close_reason is not None:
            return
        for callback in list(self._receive_callbacks):
            callback(text)

    def notify_closed(self, reason: str) -> None:
        """Record closure and fire the close callbacks exactly once."""
        if self._close_reason is not None:
            return
        self._close_reason = reason
        self._closing = True
        writer = self._writer
        if writer is not None and not writer.done() and writer is not asyncio.current_task():
            writer.cancel()
        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            callback(reason)

    async def wait_closed(self) -> None:
        """Wait until the writer task has finished."""
        if self._writer is not None:
            await asyncio.gather(self._writer, return_exceptions=True)

    def _ensure_writer(self) -> None:
        if self._writer is None:
            self._writer = asyncio.get_running_loop().create_task(self._pump())

    async def _pump(self) -> None:
        """Write queued frames in order until the close marker arrives."""
        while True:
            item = await self._outbox.get()
            if item is _CLOSE:
                try:
                    await self._shutdown(self._graceful)
                except Exception as e:
                    logger.debug("Error while closing %s channel: %s", self.kind, e)
                self.notify_closed("closed by server")
                return
            try:
                await self._send_frame(item)  # type: ignore[arg-type]
            except Exception as e:
                logger.debug("Send failed on %s channel: %s", self.kind, e)
                self.notify_closed(f"send failed: {e}")
                return

    @abstractmethod
    async def _send_frame(self, text: str) -> None:
        """Write one text frame to the underlying transport."""
        ...

    @abstractmethod
    async def _shutdown(self, graceful: bool) -> None:
        """Close the underlying transport."""
        ...

