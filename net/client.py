"""WebSocket 出招客户端

功能:
- 连接服务端并接收欢迎消息 (座位号)
- 每回合提示本地输入、发送一个合法出招
- 接收并显示回合摘要和双方体力 (自己在前)
- 收到结束/中止消息或连接关闭后退出
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

from pydantic import ValidationError
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from game.constants import MAX_HEALTH
from game.enums import Move
from game.exceptions import LocalInputClosedError, PeerIOError, SetupError
from ui.input_safety import read_move, safe_input
from ui.rich_ui import ArenaConsole

from .models import validate_server_message
from .protocol import ClientMsg, MsgType, ServerMsg

if TYPE_CHECKING:
    from websockets.asyncio.client import ClientConnection

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_MATCH_FAILED = 1
EXIT_SETUP_FAILED = 2


class MoveClient:
    """猜拳对战客户端

    职责:
    1. 维护与服务端的 WebSocket 连接
    2. 收集本地出招并发送
    3. 把服务端消息交给 ArenaConsole 显示
    """

    def __init__(self, server_url: str = "ws://localhost:8765", client_id: str = "",
                 ui: ArenaConsole | None = None,
                 input_fn: Callable[[str], str] = safe_input):
        self.server_url = server_url
        self.client_id = client_id  # 仅用于日志，协议不使用
        self.ui = ui or ArenaConsole()
        self._input_fn = input_fn

        # 当前回合显示值
        self.slot: int = 0
        self.round: int = 0
        self.self_hp: int = MAX_HEALTH
        self.opponent_hp: int = MAX_HEALTH

        # 对局结果
        self.winner: int | None = None
        self.aborted: bool = False

        self._ws: ClientConnection | None = None

    # ==================== 连接管理 ====================

    async def connect(self) -> None:
        """连接到服务端

        Raises:
            SetupError: 无法建立连接
        """
        try:
            self._ws = await connect(self.server_url)
        except (OSError, InvalidURI, InvalidHandshake, asyncio.TimeoutError) as e:
            raise SetupError(f"连接失败: {e}", address=self.server_url) from e
        logger.info(f"已连接到 {self.server_url} (client id: {self.client_id})")

    async def close(self) -> None:
        """断开连接"""
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
            logger.info("已断开连接")

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    # ==================== 消息收发 ====================

    async def send(self, msg: ClientMsg) -> None:
        """发送消息

        Raises:
            PeerIOError: 连接已关闭
        """
        if self._ws is None:
            raise PeerIOError("未连接，无法发送消息")
        try:
            await self._ws.send(msg.to_json())
        except ConnectionClosed as e:
            raise PeerIOError("发送失败，连接已关闭") from e

    async def receive(self) -> ServerMsg:
        """接收并校验一条服务端消息

        Raises:
            PeerIOError: 连接已关闭或收到无法解析的消息
        """
        if self._ws is None:
            raise PeerIOError("未连接，无法接收消息")
        try:
            raw = await self._ws.recv()
        except ConnectionClosed as e:
            raise PeerIOError("连接已被服务端关闭") from e
        try:
            validate_server_message(raw)
        except ValidationError as ve:
            raise PeerIOError(f"服务端消息无效: {ve.error_count()} 个错误") from ve
        return ServerMsg.from_json(raw)

    # ==================== 对局流程 ====================

    async def wait_for_welcome(self) -> None:
        """读取欢迎消息并记录座位号"""
        msg = await self.receive()
        if msg.type != MsgType.WELCOME:
            raise PeerIOError(f"期望欢迎消息，收到 {msg.type.value}")
        self.slot = msg.data["slot"]
        self.ui.show_welcome(msg.data["text"])

    def _prompt_move(self) -> asyncio.Future:
        """在守护线程中读取本地出招，结果交回事件循环

        阻塞的 input() 无法取消；守护线程不会阻止对局结束后进程退出。
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def _deliver(move: Move | None, error: BaseException | None) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(move)

        def _worker() -> None:
            try:
                result = (read_move(self._input_fn), None)
            except BaseException as e:  # 包括 Ctrl+C 触发的 SystemExit
                result = (None, e)
            try:
                loop.call_soon_threadsafe(_deliver, *result)
            except RuntimeError:
                # 事件循环已关闭 (对局已结束)
                pass

        threading.Thread(target=_worker, name="move-input", daemon=True).start()
        return future

    async def play_round(self) -> bool:
        """进行一回合；返回 False 表示对局已结束

        等待本地输入的同时监听连接，对手断线时立即显示中止通知。
        """
        incoming = asyncio.create_task(self.receive())
        move_future = self._prompt_move()
        try:
            while not move_future.done():
                await asyncio.wait({move_future, incoming}, return_when=asyncio.FIRST_COMPLETED)
                if incoming.done() and not move_future.done():
                    if self._handle(incoming.result()) is False:
                        return False
                    incoming = asyncio.create_task(self.receive())

            move = move_future.result()
            try:
                await self.send(ClientMsg.move(move))
            except PeerIOError:
                if await self._drain(incoming):
                    return False
                raise
            return await self._await_round_end(incoming)
        finally:
            if not incoming.done():
                incoming.cancel()
            if not move_future.done():
                move_future.cancel()  # 输入线程随后的结果被丢弃

    async def _await_round_end(self, first: asyncio.Task | None = None) -> bool:
        """读取消息直到本回合结束"""
        while True:
            if first is not None:
                msg, first = await first, None
            else:
                msg = await self.receive()
            status = self._handle(msg)
            if status is not None:
                return status

    async def _drain(self, pending: asyncio.Task) -> bool:
        """发送失败后读完连接中已缓冲的消息；读到结束或中止消息返回 True"""
        try:
            msg = await pending
            while self._handle(msg) is not False:
                msg = await self.receive()
        except PeerIOError:
            return False
        return True

    def _handle(self, msg: ServerMsg) -> bool | None:
        """显示一条服务端消息

        Returns:
            None: 本回合未结束; True: 本回合结束; False: 对局结束
        """
        if msg.type == MsgType.ROUND_RESULT:
            self.round = msg.round
            self.ui.show_round_summary(msg.data["text"])

        elif msg.type == MsgType.HEALTH:
            self.self_hp = msg.data["self"]
            self.opponent_hp = msg.data["opponent"]
            self.ui.show_health(self.self_hp, self.opponent_hp)
            if self.self_hp > 0 and self.opponent_hp > 0:
                return True
            # 有一方体力归零，接下来是结束消息

        elif msg.type == MsgType.GAME_OVER:
            self.winner = msg.data["winner"]
            self.ui.show_game_over(msg.data["text"], won=self.winner == self.slot)
            return False

        elif msg.type == MsgType.MATCH_ABORTED:
            self.aborted = True
            self.ui.show_aborted(msg.data["text"])
            return False

        elif msg.type == MsgType.ERROR:
            # 服务端拒收了本回合出招，仍在等待
            self.ui.show_error(msg.data["message"])
            return True

        else:
            logger.debug(f"未处理的消息类型: {msg.type.value}")
        return None

    # ==================== 主循环 ====================

    async def run(self) -> int:
        """客户端主循环，返回进程退出码

        Raises:
            SetupError: 无法连接服务端
        """
        self.ui.show_banner()
        await self.connect()
        try:
            await self.wait_for_welcome()
            while await self.play_round():
                pass
        except PeerIOError as e:
            logger.warning(f"对局中断: {e}")
            self.ui.show_error("connection to the server was lost")
            return EXIT_MATCH_FAILED
        except LocalInputClosedError:
            logger.info("本地输入已关闭，退出")
            return EXIT_MATCH_FAILED
        finally:
            await self.close()

        return EXIT_MATCH_FAILED if self.aborted else EXIT_OK


# ==================== CLI 入口 ====================

def main(argv: list[str] | None = None) -> int:
    """命令行客户端入口"""
    import argparse

    from logging_config import setup_logging

    parser = argparse.ArgumentParser(description="猜拳对战客户端")
    parser.add_argument("host", help="服务端地址")
    parser.add_argument("port", type=int, help="服务端端口")
    parser.add_argument("client_id", help="客户端标识 (仅用于日志)")
    parser.add_argument("--log-file", default=None, help="日志文件路径")
    parser.add_argument("-v", "--verbose", action="store_true", help="详细日志")

    args = parser.parse_args(argv)

    setup_logging(
        level="DEBUG" if args.verbose else "INFO",
        log_file=args.log_file,
        enable_file=args.log_file is not None,
    )

    client = MoveClient(f"ws://{args.host}:{args.port}", client_id=args.client_id)
    try:
        return asyncio.run(client.run())
    except SetupError as e:
        logger.error(str(e))
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_SETUP_FAILED
    except KeyboardInterrupt:
        logger.info("用户中断，退出")
        return EXIT_MATCH_FAILED


if __name__ == "__main__":
    sys.exit(main())
