"""
客户端测试
"""

import asyncio
import threading
from io import StringIO
from unittest.mock import AsyncMock

import pytest
from rich.console import Console
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed

from game.enums import Move
from game.exceptions import LocalInputClosedError, PeerIOError, SetupError
from net.client import EXIT_MATCH_FAILED, EXIT_OK, EXIT_SETUP_FAILED, MoveClient, main
from net.protocol import ClientMsg, ServerMsg
from net.server import GameServer
from ui.rich_ui import ArenaConsole


def _scripted(*lines):
    """按顺序返回预设输入；用完后模拟 EOF"""
    it = iter(lines)

    def _input(prompt=""):
        try:
            return next(it)
        except StopIteration:
            raise LocalInputClosedError() from None

    return _input


def _blocked(release: threading.Event):
    """一直阻塞在提示处的输入，release 后模拟 EOF"""

    def _input(prompt=""):
        release.wait(10)
        raise LocalInputClosedError()

    return _input


def _client(*lines, slot=1, input_fn=None):
    out = StringIO()
    ui = ArenaConsole(Console(file=out, width=100, color_system=None))
    client = MoveClient("ws://test:1", client_id="c1", ui=ui,
                        input_fn=input_fn or _scripted(*lines))
    client.slot = slot
    return client, out


def _fake_ws(*msgs, eager=0, send_error=None):
    """模拟服务端连接

    前 eager 条消息立即可读，其余在客户端发送出招后才到达；
    消息读完后 recv 一直阻塞。异常实例在轮到时抛出。
    """
    frames = [m.to_json() if isinstance(m, ServerMsg) else m for m in msgs]
    sent = asyncio.Event()
    served = 0

    async def _send(raw):
        sent.set()
        if send_error is not None:
            raise send_error

    async def _recv():
        nonlocal served
        if served >= eager:
            await sent.wait()
        if not frames:
            await asyncio.Event().wait()
        served += 1
        frame = frames.pop(0)
        if isinstance(frame, BaseException):
            raise frame
        return frame

    ws = AsyncMock()
    ws.send.side_effect = _send
    ws.recv.side_effect = _recv
    return ws


def _moves_sent(ws) -> list[str]:
    return [ClientMsg.from_json(c.args[0]).data["move"] for c in ws.send.call_args_list]


class TestMoveClientInit:
    def test_default_config(self):
        client = MoveClient()
        assert client.server_url == "ws://localhost:8765"
        assert client.slot == 0
        assert client.self_hp == 100
        assert client.opponent_hp == 100
        assert client.is_connected is False


class TestMoveClientRound:
    @pytest.mark.asyncio
    async def test_welcome_sets_slot(self):
        client, out = _client()
        client._ws = _fake_ws(ServerMsg.welcome(2, "Successfully Connected. Welcome, Player 2!\n"), eager=1)
        await client.wait_for_welcome()
        assert client.slot == 2
        assert "Welcome, Player 2!" in out.getvalue()

    @pytest.mark.asyncio
    async def test_unexpected_first_message(self):
        client, _ = _client()
        client._ws = _fake_ws(ServerMsg.health(100, 100), eager=1)
        with pytest.raises(PeerIOError):
            await client.wait_for_welcome()

    @pytest.mark.asyncio
    async def test_invalid_input_is_not_sent(self):
        client, out = _client("x", "rock", "r")
        ws = _fake_ws(
            ServerMsg.round_result("\nPlayer 1 wins this round!\n", 1),
            ServerMsg.health(100, 90, 1),
        )
        client._ws = ws

        assert await client.play_round() is True
        assert _moves_sent(ws) == ["r"]
        assert (client.self_hp, client.opponent_hp) == (100, 90)
        assert client.round == 1
        text = out.getvalue()
        assert "Player 1 wins this round!" in text
        assert "Your HP: ========== (100)" in text
        assert "Opponent's HP: =========  (90)" in text

    @pytest.mark.asyncio
    async def test_game_over_win(self):
        client, out = _client("p", slot=1)
        client._ws = _fake_ws(
            ServerMsg.round_result("\nPlayer 1 wins this round!\n", 7),
            ServerMsg.health(100, 0, 7),
            ServerMsg.game_over(1, "Game over, Player 1 Wins!\n", 7),
        )
        assert await client.play_round() is False
        assert client.winner == 1
        assert "Congratulations, You win!" in out.getvalue()

    @pytest.mark.asyncio
    async def test_game_over_lose(self):
        client, out = _client("r", slot=2)
        client._ws = _fake_ws(
            ServerMsg.round_result("\nPlayer 1 wins this round!\n", 7),
            ServerMsg.health(0, 100, 7),
            ServerMsg.game_over(1, "Game over, Player 1 Wins!\n", 7),
        )
        assert await client.play_round() is False
        assert "Game Over, You lose!" in out.getvalue()

    @pytest.mark.asyncio
    async def test_match_aborted(self):
        client, out = _client("s")
        client._ws = _fake_ws(ServerMsg.match_aborted(2, "Match aborted: your opponent disconnected.\n"))
        assert await client.play_round() is False
        assert client.aborted is True
        assert "Match aborted" in out.getvalue()

    @pytest.mark.asyncio
    async def test_abort_shown_while_prompting(self):
        """停在输入提示时收到中止消息，立即显示并结束"""
        release = threading.Event()
        client, out = _client(input_fn=_blocked(release))
        ws = _fake_ws(
            ServerMsg.match_aborted(2, "Match aborted: your opponent disconnected.\n"),
            eager=1,
        )
        client._ws = ws
        try:
            assert await asyncio.wait_for(client.play_round(), 5) is False
        finally:
            release.set()
        assert client.aborted is True
        assert "Match aborted" in out.getvalue()
        ws.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_round_result_while_prompting_keeps_waiting(self):
        """提示期间收到的非结束消息只显示，不结束回合"""
        client, out = _client("p")
        ws = _fake_ws(
            ServerMsg.round_result("\nPlayer 2 wins this round!\n", 1),
            ServerMsg.health(90, 100, 1),
            eager=1,
        )
        client._ws = ws
        assert await asyncio.wait_for(client.play_round(), 5) is True
        assert _moves_sent(ws) == ["p"]
        assert (client.self_hp, client.opponent_hp) == (90, 100)

    @pytest.mark.asyncio
    async def test_send_failure_drains_buffered_abort(self):
        """发送失败时先读完已缓冲的中止消息，而不是报告连接丢失"""
        client, out = _client("r")
        client._ws = _fake_ws(
            ServerMsg.match_aborted(2, "Match aborted: your opponent disconnected.\n"),
            send_error=ConnectionClosed(None, None),
        )
        assert await asyncio.wait_for(client.play_round(), 5) is False
        assert client.aborted is True
        assert "Match aborted" in out.getvalue()

    @pytest.mark.asyncio
    async def test_send_failure_without_buffered_frames(self):
        client, _ = _client("r")
        client._ws = _fake_ws(
            ConnectionClosed(None, None),
            send_error=ConnectionClosed(None, None),
        )
        with pytest.raises(PeerIOError):
            await asyncio.wait_for(client.play_round(), 5)
        assert client.aborted is False

    @pytest.mark.asyncio
    async def test_server_error_shown(self):
        client, out = _client("s")
        client._ws = _fake_ws(ServerMsg.error("invalid move message"))
        assert await client.play_round() is True
        assert "Error: invalid move message" in out.getvalue()

    @pytest.mark.asyncio
    async def test_invalid_server_frame(self):
        client, _ = _client()
        client._ws = _fake_ws('{"type": "health", "data": {"self": 500, "opponent": 1}}', eager=1)
        with pytest.raises(PeerIOError):
            await client.receive()

    @pytest.mark.asyncio
    async def test_not_connected(self):
        client, _ = _client()
        with pytest.raises(PeerIOError):
            await client.send(ClientMsg.move(Move.ROCK))


class TestMoveClientRun:
    @pytest.mark.asyncio
    async def test_connection_closed_exits_non_zero(self, monkeypatch):
        client, _ = _client("r")
        ws = _fake_ws(ServerMsg.welcome(1, "hi"), ConnectionClosed(None, None), eager=1)
        monkeypatch.setattr("net.client.connect", AsyncMock(return_value=ws))

        assert await client.run() == EXIT_MATCH_FAILED
        ws.close.assert_awaited()
        assert client.is_connected is False

    @pytest.mark.asyncio
    async def test_local_eof_exits_non_zero(self, monkeypatch):
        client, _ = _client()
        ws = _fake_ws(ServerMsg.welcome(1, "hi"), eager=1)
        monkeypatch.setattr("net.client.connect", AsyncMock(return_value=ws))

        assert await client.run() == EXIT_MATCH_FAILED
        ws.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_connect_failure_is_setup_error(self, monkeypatch):
        client, _ = _client()
        monkeypatch.setattr("net.client.connect", AsyncMock(side_effect=ConnectionRefusedError()))
        with pytest.raises(SetupError):
            await client.run()

    def test_main_connect_failure(self, monkeypatch):
        monkeypatch.setattr("net.client.connect", AsyncMock(side_effect=OSError("refused")))
        assert main(["127.0.0.1", "1", "c1"]) == EXIT_SETUP_FAILED


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_two_clients_play_to_the_end(self):
        server = GameServer(host="127.0.0.1", port=0)
        server_task = asyncio.create_task(server.start())
        await asyncio.wait_for(server.ready.wait(), 5)
        url = f"ws://127.0.0.1:{server.bound_port}"

        out1, out2 = StringIO(), StringIO()
        c1 = MoveClient(url, "a", ArenaConsole(Console(file=out1)), _scripted(*["s"] * 10))
        c2 = MoveClient(url, "b", ArenaConsole(Console(file=out2)), _scripted(*["p"] * 10))

        t1 = asyncio.create_task(c1.run())
        await asyncio.sleep(0.1)  # 让 1 号先入座
        t2 = asyncio.create_task(c2.run())
        codes = await asyncio.wait_for(asyncio.gather(t1, t2), 15)

        assert codes == [EXIT_OK, EXIT_OK]
        assert (c1.slot, c2.slot) == (1, 2)
        assert c1.winner == c2.winner == 1
        assert "Congratulations, You win!" in out1.getvalue()
        assert "Game Over, You lose!" in out2.getvalue()
        assert "Double damage activated for Player 1!" in out2.getvalue()

        outcome = await asyncio.wait_for(server_task, 5)
        assert outcome.is_decisive
        assert outcome.rounds == 7
        assert server.session.round_count == 7

    @pytest.mark.asyncio
    async def test_opponent_leaves_while_player_is_prompting(self):
        """1 号停在输入提示时 2 号断开，1 号应显示中止通知并以 1 退出"""
        server = GameServer(host="127.0.0.1", port=0)
        server_task = asyncio.create_task(server.start())
        await asyncio.wait_for(server.ready.wait(), 5)
        url = f"ws://127.0.0.1:{server.bound_port}"

        release = threading.Event()
        out = StringIO()
        c1 = MoveClient(url, "a", ArenaConsole(Console(file=out)), _blocked(release))
        try:
            t1 = asyncio.create_task(c1.run())
            while not server.participants:
                await asyncio.sleep(0.01)

            async with connect(url) as opponent:
                await opponent.recv()  # 欢迎消息
            code = await asyncio.wait_for(t1, 5)
        finally:
            release.set()

        assert code == EXIT_MATCH_FAILED
        assert c1.aborted is True
        assert "Match aborted" in out.getvalue()

        outcome = await asyncio.wait_for(server_task, 5)
        assert not outcome.is_decisive
        assert outcome.failed_slot == 2
