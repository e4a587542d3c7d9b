"""WebSocket 对战服务端
基于 asyncio 的猜拳对战服务端

功能:
- 依次接受两个连接，分配座位 1 / 2 并发送欢迎消息
- 第三个连接直接拒绝 (不做匹配)
- 两人到齐后交给 MatchSession 运行一整场对局
- 对局结束后服务端停止
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import replace
from typing import TYPE_CHECKING

from websockets.asyncio.server import serve
from websockets.exceptions import ConnectionClosed

from game.config import get_config
from game.exceptions import SetupError
from game.match import welcome_text

from .protocol import ServerMsg
from .session import MatchOutcome, MatchSession, Participant

if TYPE_CHECKING:
    from websockets.asyncio.server import ServerConnection

logger = logging.getLogger(__name__)

# 退出码
EXIT_OK = 0
EXIT_MATCH_FAILED = 1
EXIT_SETUP_FAILED = 2


class GameServer:
    """猜拳对战 WebSocket 服务端

    职责:
    1. 管理 WebSocket 连接与座位
    2. 启动并等待唯一一场对局
    3. 对局结束后关闭监听
    """

    def __init__(self, host: str = "0.0.0.0", port: int = 8765,
                 move_timeout: float | None = None,
                 max_message_size: int = 4096):
        self.host = host
        self.port = port
        self.move_timeout = move_timeout
        self._max_message_size = max_message_size
        # 座位管理
        self.participants: list[Participant] = []
        self.session: MatchSession | None = None
        self.outcome: MatchOutcome | None = None
        # 实际监听端口 (port=0 时由系统分配)
        self.bound_port: int | None = None
        # 服务端状态
        self.ready = asyncio.Event()
        self._match_started = asyncio.Event()
        self._match_done = asyncio.Event()
        self._match_task: asyncio.Task | None = None

    # ==================== 连接管理 ====================

    def _get_remote(self, websocket: ServerConnection) -> str:
        """获取客户端地址"""
        remote = getattr(websocket, "remote_address", None)
        if remote:
            return str(remote[0])
        return "unknown"

    async def _register(self, websocket: ServerConnection) -> Participant | None:
        """为新连接分配座位并发送欢迎消息；已满则拒绝"""
        remote = self._get_remote(websocket)

        if len(self.participants) >= 2:
            logger.warning(f"对局已满，拒绝 {remote}")
            await websocket.close(1013, "match full")  # 1013 = Try Again Later
            return None

        # 先入座再发送，座位号在 await 之前确定
        participant = Participant(
            slot=len(self.participants) + 1,
            websocket=websocket,
            remote=remote,
        )
        self.participants.append(participant)
        logger.info(f"{participant.label} connected: {remote}")

        try:
            await websocket.send(
                ServerMsg.welcome(participant.slot, welcome_text(participant.slot)).to_json()
            )
        except ConnectionClosed:
            # 座位暂留: 对局开始前由 _hold_seat 释放，开始后第一次收发即会失败并中止
            logger.warning(f"发送欢迎消息失败 ({participant.label})")
        return participant

    async def _connection_handler(self, websocket: ServerConnection) -> None:
        """处理单个 WebSocket 连接

        连接在本协程返回前保持打开；收发由 MatchSession 负责。
        """
        participant = await self._register(websocket)
        if participant is None:
            return  # 连接被拒绝
        if len(self.participants) == 2 and self._match_task is None:
            self._match_started.set()
            self._match_task = asyncio.create_task(self._run_match())
        elif not await self._hold_seat(participant):
            return
        await self._match_done.wait()

    async def _hold_seat(self, participant: Participant) -> bool:
        """等待对手入座；对局开始前断开则释放座位并返回 False"""
        closed = asyncio.create_task(participant.websocket.wait_closed())
        started = asyncio.create_task(self._match_started.wait())
        try:
            await asyncio.wait({closed, started}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed.cancel()
            started.cancel()

        if self._match_started.is_set() or participant not in self.participants:
            return True
        self.participants.remove(participant)
        logger.info(f"{participant.label} 在对局开始前断开，座位已释放")
        return False

    # ==================== 对局 ====================

    async def _run_match(self) -> None:
        """两人到齐后运行对局"""
        player1, player2 = self.participants
        self.session = MatchSession(player1, player2, move_timeout=self.move_timeout)
        logger.info("Both players connected, match starting")
        try:
            self.outcome = await self.session.run()
        except Exception as e:
            logger.exception(f"对局运行异常: {e}")
        finally:
            self._match_done.set()

    # ==================== 服务端生命周期 ====================

    async def start(self) -> MatchOutcome | None:
        """启动服务端，运行一场对局后返回对局汇总

        Raises:
            SetupError: 无法监听指定地址
        """
        try:
            server = await serve(
                self._connection_handler,
                self.host,
                self.port,
                max_size=self._max_message_size,
            )
        except OSError as e:
            raise SetupError(f"无法监听 {self.host}:{self.port}: {e}",
                             address=f"{self.host}:{self.port}") from e

        async with server:
            sockets = list(server.sockets)
            self.bound_port = sockets[0].getsockname()[1] if sockets else self.port
            logger.info(f"Server listening on port {self.bound_port} ...")
            self.ready.set()
            await self._match_done.wait()

        logger.info("服务端停止")
        return self.outcome

    def stop(self) -> None:
        """停止服务端 (不等待对局结束)"""
        if self._match_task and not self._match_task.done():
            self._match_task.cancel()
        self._match_done.set()


# ==================== CLI 入口 ====================

def main(argv: list[str] | None = None) -> int:
    """命令行启动服务端"""
    import argparse

    from logging_config import setup_logging

    config = get_config()

    parser = argparse.ArgumentParser(description="猜拳对战 WebSocket 服务端")
    parser.add_argument("port", type=int, nargs="?", default=config.port, help="监听端口")
    parser.add_argument("--host", default=config.host, help="监听地址")
    parser.add_argument("--move-timeout", type=float, default=config.move_timeout,
                        help="等待出招超时秒数 (0 表示不限时)")
    parser.add_argument("--log-file", default=None, help="日志文件路径")
    parser.add_argument("-v", "--verbose", action="store_true", help="详细日志")

    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose or config.debug_mode else config.log_level
    setup_logging(
        level=level,
        log_file=args.log_file,
        enable_file=args.log_file is not None,
        enable_console=True,
        console_level=level,
    )

    # 命令行参数覆盖环境变量
    config = replace(config, host=args.host, port=args.port, move_timeout=args.move_timeout)
    errors = config.validate()
    if errors:
        for err in errors:
            logger.error(f"配置错误: {err}")
        print(f"Error: {'; '.join(errors)}", file=sys.stderr)
        return EXIT_SETUP_FAILED

    server = GameServer(
        host=config.host,
        port=config.port,
        move_timeout=config.move_timeout_or_none,
        max_message_size=config.max_message_size,
    )
    try:
        outcome = asyncio.run(server.start())
    except SetupError as e:
        logger.error(str(e))
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_SETUP_FAILED
    except KeyboardInterrupt:
        logger.info("服务端被中断")
        return EXIT_MATCH_FAILED

    if outcome is None or not outcome.is_decisive:
        return EXIT_MATCH_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
