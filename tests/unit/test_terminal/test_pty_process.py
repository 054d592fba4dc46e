"""Tests for PtyProcess against real child processes."""

from __future__ import annotations

import asyncio
import signal

import pytest

pytest.importorskip("termios")

from ptybridge.terminal.base import TerminalProcess, TerminalSpawnError  # noqa: E402
from ptybridge.terminal.pty_process import PtyProcess  # noqa: E402


class Recorder:
    """Collects output and the exit status of one PtyProcess."""

    def __init__(self, proc: PtyProcess) -> None:
        self.chunks: list[str] = []
        self.exited: asyncio.Future = asyncio.get_running_loop().create_future()
        proc.on_data(self.chunks.append)
        proc.on_exit(self._on_exit)

    @property
    def output(self) -> str:
        return "".join(self.chunks)

    def _on_exit(self, exit_code: int, sig: int | None) -> None:
        if not self.exited.done():
            self.exited.set_result((exit_code, sig))

    async def wait_exit(self) -> tuple[int, int | None]:
        return await asyncio.wait_for(self.exited, timeout=5)

    async def wait_for_output(self, text: str, timeout: float = 5) -> None:
        async def poll() -> None:
            while text not in self.output:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(poll(), timeout=timeout)


async def _spawn(script: str, cwd, **kwargs) -> tuple[PtyProcess, Recorder]:
    proc = await PtyProcess.spawn(["sh", "-c", script], cwd=cwd, **kwargs)
    return proc, Recorder(proc)


class TestSpawn:
    def test_is_terminal_process(self) -> None:
        assert issubclass(PtyProcess, TerminalProcess)

    @pytest.mark.asyncio
    async def test_output_and_exit_code(self, tmp_path) -> None:
        proc, rec = await _spawn("printf hello; exit 3", tmp_path)
        assert await rec.wait_exit() == (3, None)
        assert "hello" in rec.output
        assert proc.exit_status == (3, None)
        assert not proc.is_alive

    @pytest.mark.asyncio
    async def test_term_is_exported(self, tmp_path) -> None:
        _, rec = await _spawn('printf "%s" "$TERM"', tmp_path, name="xterm-256color")
        await rec.wait_exit()
        assert "xterm-256color" in rec.output

    @pytest.mark.asyncio
    async def test_default_term_name(self, tmp_path) -> None:
        _, rec = await _spawn('printf "%s" "$TERM"', tmp_path)
        await rec.wait_exit()
        assert "xterm-color" in rec.output

    @pytest.mark.asyncio
    async def test_working_directory(self, tmp_path) -> None:
        workdir = tmp_path / "content"
        workdir.mkdir()
        _, rec = await _spawn("pwd", workdir)
        await rec.wait_exit()
        assert rec.output.strip().endswith("content")

    @pytest.mark.asyncio
    async def test_custom_environment(self, tmp_path) -> None:
        _, rec = await _spawn(
            'printf "%s" "$GREETING"', tmp_path, env={"GREETING": "hi there", "PATH": "/usr/bin:/bin"}
        )
        await rec.wait_exit()
        assert "hi there" in rec.output

    @pytest.mark.asyncio
    async def test_initial_window_size(self, tmp_path) -> None:
        _, rec = await _spawn("stty size", tmp_path, cols=100, rows=30)
        await rec.wait_exit()
        assert "30 100" in rec.output

    @pytest.mark.asyncio
    async def test_utf8_output(self, tmp_path) -> None:
        _, rec = await _spawn(r"printf '\303\251t\303\251'", tmp_path)
        await rec.wait_exit()
        assert "été" in rec.output

    @pytest.mark.asyncio
    async def test_missing_command(self, tmp_path) -> None:
        with pytest.raises(TerminalSpawnError) as exc_info:
            await PtyProcess.spawn(["/nonexistent/shell"], cwd=tmp_path)
        assert exc_info.value.command == ["/nonexistent/shell"]

    @pytest.mark.asyncio
    async def test_missing_working_directory(self, tmp_path) -> None:
        with pytest.raises(TerminalSpawnError):
            await PtyProcess.spawn(["sh"], cwd=tmp_path / "missing")

    @pytest.mark.asyncio
    async def test_empty_command(self, tmp_path) -> None:
        with pytest.raises(TerminalSpawnError):
            await PtyProcess.spawn([], cwd=tmp_path)


class TestInteraction:
    @pytest.mark.asyncio
    async def test_write_reaches_process(self, tmp_path) -> None:
        proc, rec = await _spawn("read line; printf 'got:%s' \"$line\"", tmp_path)
        proc.write("ping\n")
        assert await rec.wait_exit() == (0, None)
        assert "got:ping" in rec.output

    @pytest.mark.asyncio
    async def test_resize(self, tmp_path) -> None:
        proc, rec = await _spawn("read line; stty size", tmp_path)
        proc.resize(120, 40)
        proc.write("\n")
        await rec.wait_exit()
        assert "40 120" in rec.output

    @pytest.mark.asyncio
    async def test_lone_surrogate_is_replaced(self, tmp_path) -> None:
        proc, rec = await _spawn("read line; printf 'got:%s' \"$line\"", tmp_path)
        proc.write("a\ud800b\n")
        assert await rec.wait_exit() == (0, None)
        assert "got:a?b" in rec.output

    @pytest.mark.asyncio
    @pytest.mark.parametrize("cols, rows", [(-1, 24), (70000, 24), (80, -5)])
    async def test_unrepresentable_size_is_ignored(self, tmp_path, cols, rows) -> None:
        proc, rec = await _spawn("read line; stty size", tmp_path, cols=90, rows=20)
        proc.resize(cols, rows)
        proc.write("\n")
        assert await rec.wait_exit() == (0, None)
        assert "20 90" in rec.output

    @pytest.mark.asyncio
    async def test_pause_holds_output_until_resume(self, tmp_path) -> None:
        proc = await PtyProcess.spawn(["cat"], cwd=tmp_path)
        rec = Recorder(proc)
        proc.pause()
        proc.pause()
        assert proc.is_paused
        proc.write("held\n")
        await asyncio.sleep(0.2)
        assert "held" not in rec.output

        proc.resume()
        await rec.wait_for_output("held")
        proc.kill()
        await rec.wait_exit()


class TestKill:
    @pytest.mark.asyncio
    async def test_kill_hangs_up_process(self, tmp_path) -> None:
        proc = await PtyProcess.spawn(["cat"], cwd=tmp_path)
        rec = Recorder(proc)
        proc.write("x\n")
        await rec.wait_for_output("x")

        proc.kill()

        assert not proc.is_alive
        assert await rec.wait_exit() == (0, signal.SIGHUP)

    @pytest.mark.asyncio
    async def test_kill_is_idempotent(self, tmp_path) -> None:
        proc = await PtyProcess.spawn(["cat"], cwd=tmp_path)
        rec = Recorder(proc)
        proc.kill()
        proc.kill()
        await rec.wait_exit()
        proc.kill()

    @pytest.mark.asyncio
    async def test_calls_after_kill_are_ignored(self, tmp_path) -> None:
        proc = await PtyProcess.spawn(["cat"], cwd=tmp_path)
        rec = Recorder(proc)
        proc.kill()
        proc.write("dropped\n")
        proc.resize(10, 10)
        await rec.wait_exit()
        assert "dropped" not in rec.output

    @pytest.mark.asyncio
    async def test_signal_exit_status(self, tmp_path) -> None:
        _, rec = await _spawn("kill -TERM $$", tmp_path)
        assert await rec.wait_exit() == (0, signal.SIGTERM)

    @pytest.mark.asyncio
    async def test_on_exit_after_exit_runs_immediately(self, tmp_path) -> None:
        proc, rec = await _spawn("exit 7", tmp_path)
        await rec.wait_exit()
        statuses: list = []
        proc.on_exit(lambda code, sig: statuses.append((code, sig)))
        assert statuses == [(7, None)]
