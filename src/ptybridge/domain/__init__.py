"""Domain models for ptybridge.

This package contains the wire messages exchanged with the browser
terminal. All models use Pydantic v2 for validation and serialization.
"""

from ptybridge.domain.messages import (
    IncomingMessage,
    MessageDecodeError,
    OutgoingMessage,
    decode_incoming,
    encode_outgoing,
)

__all__ = [
    "IncomingMessage",
    "MessageDecodeError",
    "OutgoingMessage",
    "decode_incoming",
    "encode_outgoing",
]
