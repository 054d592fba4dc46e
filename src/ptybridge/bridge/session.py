"""Terminal session: one transport channel bridged to one terminal process.

Implements the acknowledgement-based flow control between the terminal
and the browser client. Output is forwarded untagged until
``ack_threshold`` characters have accumulated; the chunk that crosses the
threshold is tagged and the client must acknowledge it. While more than
``high_watermark`` tagged chunks are unacknowledged the terminal is
paused, and it resumes once fewer than ``low_watermark`` remain. The
backlog a slow client can cause is therefore bounded by roughly
``high_watermark * ack_threshold`` characters.

Flow control idea from
https://xtermjs.org/docs/guides/flowcontrol/#ideas-for-a-better-mechanism.
"""

from __future__ import annotations

import enum
import itertools
import logging
from typing import Optional

from ptybridge.domain.messages import (
    MessageDecodeError,
    OutgoingMessage,
    decode_incoming,
    encode_outgoing,
)
from ptybridge.terminal.base import TerminalProcess
from ptybridge.transport.base import TransportChannel

logger = logging.getLogger(__name__)

ACK_THRESHOLD = 100_000
HIGH_WATERMARK = 5
LOW_WATERMARK = 2


class SessionState(str, enum.Enum):
    """Lifecycle of a session. Closed is terminal."""

    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class SessionCounter:
    """Source of session ids, strictly increasing from ``start``.

    One instance lives for the whole process (``PROCESS_SESSION_COUNTER``)
    and is only reset by restarting the process. Tests pass their own.
    """

    def __init__(self, start: int = 0) -> None:
        self._ids = itertools.count(start)

    def next_id(self) -> int:
        return next(self._ids)


PROCESS_SESSION_COUNTER = SessionCounter()


class Session:
    """Bridges one transport channel to one terminal process.

    The session owns both ends exclusively and manages its own lifetime:
    it registers itself as a listener on both and tears both down when
    either side closes. Nothing else needs to hold a reference to it.
    """

    def __init__(
        self,
        transport: TransportChannel,
        terminal: TerminalProcess,
        ack_threshold: int = ACK_THRESHOLD,
        high_watermark: int = HIGH_WATERMARK,
        low_watermark: int = LOW_WATERMARK,
        counter: SessionCounter | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._transport = transport
        self._terminal = terminal
        self._ack_threshold = ack_threshold
        self._high_watermark = high_watermark
        self._low_watermark = low_watermark
        self._log = log or logger
        self.id = (counter or PROCESS_SESSION_COUNTER).next_id()
        self.pending_acks = 0
        self.bytes_since_ack = 0
        self._paused = False
        self._state = SessionState.ACTIVE

        self._transport.on_close(self.on_transport_closed)
        self._transport.on_receive(self.on_inbound_message)
        self._terminal.on_data(self.on_terminal_output)
        self._terminal.on_exit(self.on_terminal_exit)

        self._log.debug("Session %d started", self.id)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is not SessionState.ACTIVE

    @property
    def is_paused(self) -> bool:
        return self._paused

    def on_inbound_message(self, text: str) -> None:
        """Apply one client frame: input, resize and/or acknowledgement."""
        if self.closed:
            return
        self._log.debug("Send data in session %d\n%s", self.id, text)
        try:
            message = decode_incoming(text)
        except MessageDecodeError as e:
            self._log.warning("Closing session %d on undecodable frame: %s", self.id, e)
            self.close()
            return

        if message.data:
            self._terminal.write(message.data)
        if message.resize is not None:
            self._terminal.resize(*message.resize)
        elif message.cols or message.rows:
            self._log.debug("Ignoring partial resize in session %d", self.id)
        if message.ack:
            self._acknowledge()

    def on_terminal_output(self, chunk: str) -> None:
        """Forward one output chunk, tagging it when an ack is due."""
        if self.closed:
            return
        self.bytes_since_ack += len(chunk)
        if self.bytes_since_ack < self._ack_threshold:
            self._transport.send(encode_outgoing(OutgoingMessage(data=chunk)))
            return

        self._transport.send(encode_outgoing(OutgoingMessage(data=chunk, ack=True)))
        self.pending_acks += 1
        self.bytes_since_ack = 0
        if self.pending_acks > self._high_watermark and not self._paused:
            self._paused = True
            self._terminal.pause()
            self._log.debug(
                "Paused output of session %d with %d unacknowledged chunks",
                self.id, self.pending_acks,
            )

    def on_transport_closed(self, reason: str) -> None:
        self._log.debug(
            "PTY socket disconnected for session %d reason: %s", self.id, reason
        )
        self.close()

    def on_terminal_exit(self, exit_code: int, signal: Optional[int] = None) -> None:
        self._log.debug(
            "Terminal of session %d exited (code=%d, signal=%s)", self.id, exit_code, signal
        )
        self.close()

    def close(self) -> None:
        """Tear down both ends. Only the first call has any effect."""
        if self._state is not SessionState.ACTIVE:
            return
        self._state = SessionState.CLOSING
        try:
            self._transport.close(graceful=False)
        except Exception as e:
            self._log.error("Error closing transport of session %d: %s", self.id, e)
        try:
            self._terminal.kill()
        except Exception as e:
            self._log.error("Error killing terminal of session %d: %s", self.id, e)
        self._state = SessionState.CLOSED
        self._log.debug("Session %d closed", self.id)

    def _acknowledge(self) -> None:
        if self.pending_acks > 0:
            self.pending_acks -= 1
        if self.pending_acks < self._low_watermark and self._paused:
            self._paused = False
            self._terminal.resume()
            self._log.debug("Resumed output of session %d", self.id)
