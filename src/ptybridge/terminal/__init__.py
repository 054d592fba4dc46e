"""Terminal process module for ptybridge.

Spawns and drives the interactive program behind each browser terminal.
The abstract interface lets sessions run against an in-memory fake in
tests and against a real pseudo-terminal in production.

Public API:
    TerminalProcess -- Abstract base class
    TerminalSpawnError -- Raised when a terminal cannot be started
    PtyProcess -- Standard library pty implementation
"""

from ptybridge.terminal.base import TerminalProcess, TerminalSpawnError

__all__ = ["TerminalProcess", "TerminalSpawnError", "PtyProcess"]


def __getattr__(name: str) -> type:
    """Lazy import for the POSIX-only pty implementation."""
    if name == "PtyProcess":
        from ptybridge.terminal.pty_process import PtyProcess
        return PtyProcess
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
