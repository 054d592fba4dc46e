"""Pseudo-terminal process backed by the standard library pty module.

Starts a command on a fresh pty as a session leader with the pty as its
controlling terminal, so line editing, job control and window-size
signals behave as in a real terminal. Output is read by an event-loop
reader, which is what makes ``pause()`` a pure flow-control signal: the
reader is removed and the kernel pty buffer applies backpressure to the
child.
"""

from __future__ import annotations

import asyncio
import codecs
import fcntl
import logging
import os
import pty
import signal
import struct
import subprocess
import termios
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ptybridge.terminal.base import (
    DataCallback,
    ExitCallback,
    TerminalProcess,
    TerminalSpawnError,
)

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 65536


def _acquire_controlling_tty() -> None:
    """Runs in the child after setsid(); stdin is already the pty slave."""
    fcntl.ioctl(0, termios.TIOCSCTTY, 0)


def _set_window_size(fd: int, cols: int, rows: int) -> None:
    winsize = struct.pack("HHHH", rows, cols, 0, 0)
    fcntl.ioctl(fd, termios.TIOCSWINSZ, winsize)


class PtyProcess(TerminalProcess):
    """A child process attached to a pseudo-terminal.

    Create instances with :meth:`spawn`. Reading starts when the first
    data callback is registered, so no output is lost between spawning
    and wiring up a session.

    Usage::

        proc = await PtyProcess.spawn(["bash"], cwd="/srv/content")
        proc.on_data(lambda chunk: print(chunk, end=""))
        proc.on_exit(lambda code, sig: print("exited", code, sig))
        proc.write("ls\\n")
    """

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        master_fd: int,
        command: Sequence[str] = (),
    ) -> None:
        self._process = process
        self._master_fd: int | None = master_fd
        self._command = list(command)
        self._loop = asyncio.get_running_loop()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._data_callbacks: list[DataCallback] = []
        self._exit_callbacks: list[ExitCallback] = []
        self._exit_status: tuple[int, Optional[int]] | None = None
        self._pending_input = bytearray()
        self._reading = False
        self._writing = False
        self._paused = False
        self._eof = False
        self._killed = False
        self._exit_task = self._loop.create_task(self._watch_exit())

    @classmethod
    async def spawn(
        cls,
        command: Sequence[str],
        cwd: Path | str,
        env: Mapping[str, str] | None = None,
        name: str = "xterm-color",
        cols: int = 80,
        rows: int = 24,
    ) -> PtyProcess:
        """Start ``command`` on a new pty.

        Args:
            command: Program and arguments.
            cwd: Working directory for the child.
            env: Environment for the child; defaults to the full host
                 environment. ``TERM`` is always set to ``name``.
            name: Terminal type exported as ``TERM``.
            cols: Initial terminal width.
            rows: Initial terminal height.

        Raises:
            TerminalSpawnError: If the pty cannot be allocated or the
                command cannot be started.
        """
        command = list(command)
        if not command:
            raise TerminalSpawnError("No terminal command configured")

        try:
            master_fd, slave_fd = pty.openpty()
        except OSError as e:
            raise TerminalSpawnError(f"Cannot allocate pty: {e}", command) from e

        child_env = dict(os.environ if env is None else env)
        child_env["TERM"] = name
        try:
            _set_window_size(slave_fd, cols, rows)
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                cwd=str(cwd),
                env=child_env,
                start_new_session=True,
                preexec_fn=_acquire_controlling_tty,
            )
        except (OSError, subprocess.SubprocessError) as e:
            os.close(master_fd)
            raise TerminalSpawnError(
                f"Cannot start {command[0]!r} in {cwd}: {e}", command
            ) from e
        finally:
            os.close(slave_fd)

        flags = fcntl.fcntl(master_fd, fcntl.F_GETFL)
        fcntl.fcntl(master_fd, fcntl.F_SETFL, flags | os.O_NONBLOCK)

        logger.info(
            "Started terminal %s (pid=%d, %dx%d, cwd=%s)",
            " ".join(command), process.pid, cols, rows, cwd,
        )
        return cls(process, master_fd, command)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def is_alive(self) -> bool:
        return self._exit_status is None and not self._killed

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def exit_status(self) -> tuple[int, Optional[int]] | None:
        """(exit_code, signal) once the process has exited, else None."""
        return self._exit_status

    def on_data(self, callback: DataCallback) -> None:
        self._data_callbacks.append(callback)
        self._start_reading()

    def on_exit(self, callback: ExitCallback) -> None:
        if self._exit_status is not None:
            callback(*self._exit_status)
            return
        self._exit_callbacks.append(callback)

    def write(self, data: str) -> None:
        if self._master_fd is None:
            logger.debug("Dropping %d chars written to closed terminal", len(data))
            return
        self._pending_input += data.encode("utf-8", errors="replace")
        self._flush_input()

    def resize(self, cols: int, rows: int) -> None:
        if self._master_fd is None:
            return
        try:
            _set_window_size(self._master_fd, cols, rows)
        except (OSError, struct.error) as e:
            logger.debug("Resize to %dx%d failed: %s", cols, rows, e)
            return
        logger.debug("Resized terminal to %dx%d", cols, rows)

    def pause(self) -> None:
        if self._paused:
            return
        self._paused = True
        self._stop_reading()
        logger.debug("Paused terminal output (pid=%d)", self.pid)

    def resume(self) -> None:
        if not self._paused:
            return
        self._paused = False
        self._start_reading()
        logger.debug("Resumed terminal output (pid=%d)", self.pid)

    def kill(self) -> None:
        if self._killed:
            return
        self._killed = True
        if self._process.returncode is None:
            try:
                # Same default as a hung-up terminal; tmux detaches its client.
                self._process.send_signal(signal.SIGHUP)
            except ProcessLookupError:
                pass
        self._close_fd()
        logger.info("Killed terminal %s (pid=%d)", " ".join(self._command), self.pid)

    # -- reading ---------------------------------------------------------

    def _start_reading(self) -> None:
        if (
            self._reading
            or self._paused
            or self._eof
            or self._master_fd is None
            or not self._data_callbacks
        ):
            return
        self._loop.add_reader(self._master_fd, self._on_readable)
        self._reading = True

    def _stop_reading(self) -> None:
        if self._reading and self._master_fd is not None:
            self._loop.remove_reader(self._master_fd)
        self._reading = False

    def _on_readable(self) -> None:
        self._read_once()

    def _read_once(self) -> bool:
        """Read and emit one chunk. Returns False when nothing was read."""
        if self._master_fd is None:
            return False
        try:
            data = os.read(self._master_fd, READ_CHUNK_SIZE)
        except BlockingIOError:
            return False
        except OSError:
            # EIO once every process on the slave side has gone away.
            data = b""
        if not data:
            self._eof = True
            self._stop_reading()
            return False
        self._emit(self._decoder.decode(data))
        return True

    def _emit(self, text: str) -> None:
        if not text:
            return
        for callback in list(self._data_callbacks):
            callback(text)

    def _drain(self) -> None:
        """Forward whatever output is immediately available."""
        while not self._paused and self._data_callbacks and self._read_once():
            pass

    # -- writing ---------------------------------------------------------

    def _flush_input(self) -> None:
        while self._pending_input and self._master_fd is not None:
            try:
                written = os.write(self._master_fd, self._pending_input)
            except BlockingIOError:
                if not self._writing:
                    self._loop.add_writer(self._master_fd, self._flush_input)
                    self._writing = True
                return
            except OSError as e:
                logger.debug("Write to terminal failed: %s", e)
                self._pending_input.clear()
                break
            del self._pending_input[:written]
        self._stop_writing()

    def _stop_writing(self) -> None:
        if self._writing and self._master_fd is not None:
            self._loop.remove_writer(self._master_fd)
        self._writing = False

    # -- lifecycle -------------------------------------------------------

    async def _watch_exit(self) -> None:
        returncode = await self._process.wait()
        self._drain()
        if not self._paused:
            self._emit(self._decoder.decode(b"", final=True))
        self._stop_reading()
        if returncode < 0:
            self._exit_status = (0, -returncode)
        else:
            self._exit_status = (returncode, None)
        logger.info(
            "Terminal exited (pid=%d, code=%d, signal=%s)",
            self.pid, self._exit_status[0], self._exit_status[1],
        )
        self._close_fd()
        callbacks, self._exit_callbacks = self._exit_callbacks, []
        for callback in callbacks:
            callback(*self._exit_status)

    def _close_fd(self) -> None:
        self._stop_reading()
        self._stop_writing()
        if self._master_fd is not None:
            try:
                os.close(self._master_fd)
            except OSError:
                pass
            self._master_fd = None
