"""Shared test fixtures for the ptybridge test suite.

Provides in-memory stand-ins for the two ends of a session: a transport
channel that records frames and a terminal process that records calls
and can emit output or exit on demand.
"""

from __future__ import annotations

import json
from typing import Callable, Optional

import pytest

from ptybridge.bridge.session import Session, SessionCounter
from ptybridge.terminal.base import TerminalProcess


class FakeChannel:
    """Transport channel that records what the session does with it."""

    kind = "fake"

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.close_calls: list[bool] = []
        self._receive_callbacks: list[Callable[[str], None]] = []
        self._close_callbacks: list[Callable[[str], None]] = []

    def send(self, text: str) -> None:
        self.sent.append(text)

    def on_receive(self, callback: Callable[[str], None]) -> None:
        self._receive_callbacks.append(callback)

    def on_close(self, callback: Callable[[str], None]) -> None:
        self._close_callbacks.append(callback)

    def close(self, graceful: bool = True) -> None:
        self.close_calls.append(graceful)

    # -- test helpers ----------------------------------------------------

    def receive(self, payload: str | dict) -> None:
        text = payload if isinstance(payload, str) else json.dumps(payload)
        for callback in list(self._receive_callbacks):
            callback(text)

    def remote_close(self, reason: str = "transport close") -> None:
        for callback in list(self._close_callbacks):
            callback(reason)

    @property
    def frames(self) -> list[dict]:
        return [json.loads(text) for text in self.sent]


class FakeTerminal(TerminalProcess):
    """Terminal process that records calls instead of running anything.

    ``echo`` makes every write come straight back as output, and
    ``exit_on`` makes the terminal exit when that exact input arrives.
    """

    def __init__(self, echo: bool = False, exit_on: str | None = None) -> None:
        self.writes: list[str] = []
        self.resizes: list[tuple[int, int]] = []
        self.pause_calls = 0
        self.resume_calls = 0
        self.kill_calls = 0
        self._echo = echo
        self._exit_on = exit_on
        self._data_callbacks: list[Callable[[str], None]] = []
        self._exit_callbacks: list[Callable[[int, Optional[int]], None]] = []

    def write(self, data: str) -> None:
        self.writes.append(data)
        if self._exit_on is not None and data == self._exit_on:
            self.exit(0)
        elif self._echo:
            self.emit(data)

    def resize(self, cols: int, rows: int) -> None:
        self.resizes.append((cols, rows))

    def pause(self) -> None:
        self.pause_calls += 1

    def resume(self) -> None:
        self.resume_calls += 1

    def kill(self) -> None:
        self.kill_calls += 1

    def on_data(self, callback: Callable[[str], None]) -> None:
        self._data_callbacks.append(callback)

    def on_exit(self, callback: Callable[[int, Optional[int]], None]) -> None:
        self._exit_callbacks.append(callback)

    # -- test helpers ----------------------------------------------------

    def emit(self, chunk: str) -> None:
        for callback in list(self._data_callbacks):
            callback(chunk)

    def exit(self, exit_code: int = 0, signal: int | None = None) -> None:
        for callback in list(self._exit_callbacks):
            callback(exit_code, signal)


# ---------------------------------------------------------------------------
# Session Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def terminal() -> FakeTerminal:
    return FakeTerminal()


@pytest.fixture
def counter() -> SessionCounter:
    """A fresh id source so tests do not depend on the process counter."""
    return SessionCounter()


@pytest.fixture
def session(channel: FakeChannel, terminal: FakeTerminal, counter: SessionCounter) -> Session:
    return Session(channel, terminal, counter=counter)  # type: ignore[arg-type]


@pytest.fixture
def make_terminal() -> Callable[..., FakeTerminal]:
    """Factory for fake terminals with custom echo/exit behavior."""
    return FakeTerminal
