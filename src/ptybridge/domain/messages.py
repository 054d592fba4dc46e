"""Wire messages exchanged between the browser terminal and the bridge.

One JSON object travels per transport frame. The client sends keystrokes,
resize requests and acknowledgements; the server sends terminal output,
flagging the chunks whose acknowledgement counts against the in-flight
budget.
"""

from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class MessageDecodeError(ValueError):
    """Raised when an inbound frame is not a valid terminal message."""


class IncomingMessage(BaseModel):
    """A frame sent by the browser client.

    Fields combine independently; a resize request carries only
    ``cols`` and ``rows``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    data: str | None = Field(default=None, description="Text to write to the terminal")
    cols: int | None = Field(
        default=None, ge=0, le=65535, description="New terminal width"
    )
    rows: int | None = Field(
        default=None, ge=0, le=65535, description="New terminal height"
    )
    ack: bool | None = Field(default=None, description="Acknowledges one ack-tagged chunk")

    @property
    def resize(self) -> tuple[int, int] | None:
        """The (cols, rows) pair, or None unless both halves are present."""
        if self.cols and self.rows:
            return self.cols, self.rows
        return None


class OutgoingMessage(BaseModel):
    """A frame sent to the browser client."""

    model_config = ConfigDict(frozen=True)

    data: str | None = Field(default=None, description="Terminal output chunk")
    ack: bool | None = Field(
        default=None, description="Set when the client must acknowledge this chunk"
    )


def decode_incoming(text: str | bytes) -> IncomingMessage:
    """Parse one inbound frame.

    Raises:
        MessageDecodeError: If the frame is not JSON or does not match
            the message schema.
    """
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MessageDecodeError(f"Frame is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise MessageDecodeError(
            f"Frame must be a JSON object, got {type(payload).__name__}"
        )
    try:
        return IncomingMessage.model_validate(payload)
    except ValidationError as e:
        raise MessageDecodeError(f"Frame does not match message schema: {e}") from e


def encode_outgoing(message: OutgoingMessage) -> str:
    """Serialize an outbound message, omitting unset fields."""
    return message.model_dump_json(exclude_none=True)
