"""Session bridge module for ptybridge.

Connects one transport channel to one terminal process and applies the
acknowledgement-based flow control between them.

Public API:
    Session -- Per-connection bridge and lifecycle state machine
    SessionCounter -- Injectable source of session ids
"""

from ptybridge.bridge.session import (
    ACK_THRESHOLD,
    HIGH_WATERMARK,
    LOW_WATERMARK,
    PROCESS_SESSION_COUNTER,
    Session,
    SessionCounter,
    SessionState,
)

__all__ = [
    "ACK_THRESHOLD",
    "HIGH_WATERMARK",
    "LOW_WATERMARK",
    "PROCESS_SESSION_COUNTER",
    "Session",
    "SessionCounter",
    "SessionState",
]
