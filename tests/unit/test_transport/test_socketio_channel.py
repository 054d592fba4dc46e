"""Tests for the Socket.IO transport channel."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from ptybridge.transport.socketio_channel import DATA_EVENT, SocketIOChannel


@pytest.fixture
def server() -> MagicMock:
    server = MagicMock()
    server.emit = AsyncMock()
    server.disconnect = AsyncMock()
    return server


class TestSocketIOChannel:
    def test_kind_and_sid(self, server) -> None:
        channel = SocketIOChannel(server, "abc")
        assert channel.kind == "socketio"
        assert channel.sid == "abc"

    @pytest.mark.asyncio
    async def test_frames_are_emitted_to_client(self, server) -> None:
        channel = SocketIOChannel(server, "abc")
        channel.send('{"data":"hi"}')
        channel.close()
        await channel.wait_closed()
        server.emit.assert_awaited_once_with(DATA_EVENT, '{"data":"hi"}', to="abc")
        server.disconnect.assert_awaited_once_with("abc")

    @pytest.mark.asyncio
    async def test_custom_event_name(self, server) -> None:
        channel = SocketIOChannel(server, "abc", event="output")
        channel.send("x")
        channel.close()
        await channel.wait_closed()
        assert server.emit.await_args.args[0] == "output"

    @pytest.mark.asyncio
    async def test_abrupt_close_disconnects_without_flushing(self, server) -> None:
        channel = SocketIOChannel(server, "abc")
        reasons: list[str] = []
        channel.on_close(reasons.append)
        channel.send("queued")
        channel.close(graceful=False)
        await channel.wait_closed()
        server.emit.assert_not_awaited()
        server.disconnect.assert_awaited_once_with("abc")
        assert reasons == ["closed by server"]

    @pytest.mark.asyncio
    async def test_emit_failure_closes_channel(self, server) -> None:
        server.emit.side_effect = ConnectionError("no such client")
        channel = SocketIOChannel(server, "abc")
        reasons: list[str] = []
        channel.on_close(reasons.append)
        channel.send("x")
        await channel.wait_closed()
        assert len(reasons) == 1
        assert "no such client" in reasons[0]
