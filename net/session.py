"""对局会话: 服务端核心

MatchSession 独占两个玩家连接和 MatchState，驱动回合循环:

    WAITING_FOR_MOVES → RESOLVING → BROADCASTING → (WAITING_FOR_MOVES | FINISHED)

- 双方出招并发等待，两步都到齐后才结算，接收顺序不影响结果
- 任一连接收发失败 → PeerIOError → FINISHED，通知仍在线的一方后关闭双方连接
- 不重试、不重连
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed

from game.constants import PLAYER_SLOTS
from game.enums import FinishReason, MatchPhase, Move
from game.exceptions import InvalidMoveError, MoveTimeoutError, PeerIOError
from game.match import MatchState, RoundReport, game_over_text, player_label
from game.phase_fsm import MatchFSM
from game.resolver import outcome_for

from .models import validate_client_message
from .protocol import ClientMsg, ServerMsg

if TYPE_CHECKING:
    from websockets.asyncio.server import ServerConnection

logger = logging.getLogger(__name__)


@dataclass
class Participant:
    """已入座的玩家连接"""
    slot: int
    websocket: ServerConnection
    remote: str = ""

    @property
    def label(self) -> str:
        return player_label(self.slot)


@dataclass(frozen=True)
class MatchOutcome:
    """对局结束时的汇总"""
    reason: FinishReason
    rounds: int
    health: tuple[int, int]
    winner: int | None = None
    failed_slot: int | None = None

    @property
    def is_decisive(self) -> bool:
        return self.reason is FinishReason.DECISIVE


class MatchSession:
    """一场对局的完整生命周期

    Args:
        player1: 1 号玩家连接
        player2: 2 号玩家连接
        move_timeout: 等待单个出招的超时秒数，None 表示不限时
    """

    def __init__(self, player1: Participant, player2: Participant,
                 move_timeout: float | None = None):
        if (player1.slot, player2.slot) != PLAYER_SLOTS:
            raise ValueError("participants must occupy slots 1 and 2")
        self.participants: tuple[Participant, Participant] = (player1, player2)
        self.move_timeout = move_timeout
        self.state = MatchState()
        self.fsm = MatchFSM()
        self.round_count: int = 0

    @property
    def phase(self) -> MatchPhase:
        return self.fsm.current

    # ==================== 主循环 ====================

    async def run(self) -> MatchOutcome:
        """运行对局直到结束，返回对局汇总；结束时关闭双方连接"""
        try:
            while True:
                move_a, move_b = await self._await_moves()

                self.fsm.transition(MatchPhase.RESOLVING)
                report = self.state.apply_round(move_a, move_b)
                self.round_count += 1

                self.fsm.transition(MatchPhase.BROADCASTING)
                if report.finished:
                    # 胜负已定，之后的发送失败不再改变结果
                    await self._broadcast_final(report)
                    self.fsm.transition(MatchPhase.FINISHED)
                    logger.info(
                        "Match finished after %d rounds: %s wins, health=%s",
                        self.round_count, player_label(report.winner), report.health,
                    )
                    return self._outcome(FinishReason.DECISIVE, winner=report.winner)

                await self._broadcast_round(report)
                self.fsm.transition(MatchPhase.WAITING_FOR_MOVES)

        except PeerIOError as e:
            logger.warning("Match aborted in %s: %s", self.phase.name, e)
            if not self.fsm.is_finished:
                self.fsm.transition(MatchPhase.FINISHED)
            await self._notify_abort(e.player_slot)
            return self._outcome(FinishReason.PEER_FAILURE, failed_slot=e.player_slot)

        finally:
            await self._close_all()

    def _outcome(self, reason: FinishReason, **kwargs: Any) -> MatchOutcome:
        return MatchOutcome(
            reason=reason,
            rounds=self.round_count,
            health=(self.state.players[0].health, self.state.players[1].health),
            **kwargs,
        )

    # ==================== 收集出招 ====================

    async def _await_moves(self) -> tuple[Move, Move]:
        """并发等待双方出招；任一方失败则取消另一方并抛出"""
        tasks = [asyncio.create_task(self._receive_move(p)) for p in self.participants]
        try:
            move_a, move_b = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return move_a, move_b

    async def _receive_move(self, participant: Participant) -> Move:
        if self.move_timeout is None:
            return await self._read_move(participant)
        try:
            return await asyncio.wait_for(self._read_move(participant), self.move_timeout)
        except asyncio.TimeoutError:
            raise MoveTimeoutError(participant.slot, self.move_timeout) from None

    async def _read_move(self, participant: Participant) -> Move:
        """读取一个合法出招；不合法的帧回复 error 后继续等待"""
        while True:
            try:
                raw = await participant.websocket.recv()
            except ConnectionClosed as e:
                raise PeerIOError(f"{participant.label} 连接已关闭", participant.slot) from e

            try:
                validate_client_message(raw)
                move = Move.parse(ClientMsg.from_json(raw).data["move"])
            except ValidationError as ve:
                logger.warning(f"消息校验失败 ({participant.label}): {ve.error_count()} 个错误")
                await self._send(participant, ServerMsg.error("invalid move message"))
                continue
            except InvalidMoveError as e:
                logger.warning(f"出招无效 ({participant.label}): {e}")
                await self._send(participant, ServerMsg.error("invalid move message"))
                continue

            logger.info("Received from %s: %s", participant.label, move.value)
            return move

    # ==================== 消息发送 ====================

    async def _send(self, participant: Participant, msg: ServerMsg) -> None:
        """发送消息给单个玩家；失败转换为 PeerIOError"""
        try:
            await participant.websocket.send(msg.to_json())
        except ConnectionClosed as e:
            raise PeerIOError(f"发送给 {participant.label} 失败", participant.slot) from e

    async def _broadcast(self, msg: ServerMsg) -> None:
        for participant in self.participants:
            await self._send(participant, msg)

    async def _broadcast_round(self, report: RoundReport) -> None:
        """回合摘要 (双方相同) + 各自视角的体力 (自己在前)"""
        await self._broadcast(ServerMsg.round_result(report.summary, self.round_count))
        for participant in self.participants:
            await self._send_health(participant, report)

    async def _broadcast_final(self, report: RoundReport) -> None:
        """最后一回合: 逐个玩家发送摘要、体力和结束消息

        单方发送失败只记日志，另一方仍会收到完整结果。
        """
        game_over = ServerMsg.game_over(
            report.winner, game_over_text(report.winner), self.round_count,
        )
        for participant in self.participants:
            try:
                await self._send(participant, ServerMsg.round_result(report.summary, self.round_count))
                await self._send_health(participant, report)
                await self._send(participant, game_over)
            except PeerIOError as e:
                logger.warning("Final result not delivered to %s: %s", participant.label, e)

    async def _send_health(self, participant: Participant, report: RoundReport) -> None:
        self_hp, opponent_hp = self.state.health_view(participant.slot)
        await self._send(participant, ServerMsg.health(self_hp, opponent_hp, self.round_count))
        logger.info(
            "Sent to %s: Your HP: %d, Opponent's HP: %d (%s)",
            participant.label, self_hp, opponent_hp,
            outcome_for(report.result, participant.slot).value,
        )

    async def _notify_abort(self, failed_slot: int | None) -> None:
        """尽力通知未出错的一方；对方也已断开时只记日志"""
        text = "Match aborted: your opponent disconnected.\n"
        for participant in self.participants:
            if participant.slot == failed_slot:
                continue
            try:
                await participant.websocket.send(
                    ServerMsg.match_aborted(failed_slot, text).to_json()
                )
            except ConnectionClosed:
                logger.info("%s 也已断开，无法通知中止", participant.label)

    async def _close_all(self) -> None:
        for participant in self.participants:
            await participant.websocket.close()
        logger.debug("Both connections closed")
