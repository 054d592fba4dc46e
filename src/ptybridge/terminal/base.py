"""Abstract base class for terminal processes.

A terminal process is an interactive program running on a
pseudo-terminal. Sessions drive it through this interface only, so tests
can substitute an in-memory fake for the real pty.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DataCallback = Callable[[str], None]
ExitCallback = Callable[[int, Optional[int]], None]


class TerminalProcess(ABC):
    """Abstract interface to a running pseudo-terminal process.

    Output is delivered as decoded text chunks through ``on_data``
    callbacks, in emission order. The exit callback fires once with the
    exit code and, if the process was killed by a signal, the signal
    number.
    """

    @abstractmethod
    def write(self, data: str) -> None:
        """Write input to the terminal, as if typed."""
        ...

    @abstractmethod
    def resize(self, cols: int, rows: int) -> None:
        """Change the terminal window size."""
        ...

    @abstractmethod
    def pause(self) -> None:
        """Stop emitting output events until ``resume()``.

        Output produced meanwhile stays in the pty, which eventually
        blocks the writing process. Idempotent.
        """
        ...

    @abstractmethod
    def resume(self) -> None:
        """Start emitting output events again. Idempotent."""
        ...

    @abstractmethod
    def kill(self) -> None:
        """Terminate the process and release the pty. Idempotent."""
        ...

    @abstractmethod
    def on_data(self, callback: DataCallback) -> None:
        """Register a callback for output chunks."""
        ...

    @abstractmethod
    def on_exit(self, callback: ExitCallback) -> None:
        """Register a callback for process exit."""
        ...


class TerminalSpawnError(Exception):
    """Raised when a terminal process cannot be started."""

    def __init__(self, message: str, command: list[str] | None = None) -> None:
        super().__init__(message)
        self.command = command or []
