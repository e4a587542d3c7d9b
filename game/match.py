"""对局状态模块

MatchState 持有两名玩家的权威状态，apply_round 按以下顺序结算一回合:

1. 裁决出招 (resolver.resolve)
2. 平局: 双方连胜清零、伤害恢复基础值
3. 分出胜负: 败者按胜者当前伤害扣血 (截断到 0)，败者连胜清零，
   胜者连胜 +1 并重新计算伤害
4. 任一方体力归零 → 对局结束

每回合的文字摘要都从零重新生成，不复用上一回合的内容。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .constants import PLAYER_SLOTS
from .enums import Move, RoundResult
from .exceptions import raise_if_match_finished
from .player import PlayerState
from .resolver import resolve

logger = logging.getLogger(__name__)


# ==================== 文本 ====================

def player_label(slot: int) -> str:
    return f"Player {slot}"


def welcome_text(slot: int) -> str:
    return f"Successfully Connected. Welcome, {player_label(slot)}!\n"


def game_over_text(winner_slot: int) -> str:
    return f"Game over, {player_label(winner_slot)} Wins!\n"


def build_round_summary(
    result: RoundResult,
    empowered: tuple[int, ...],
    streaks: tuple[int, int],
) -> str:
    """生成回合摘要

    格式: 空行、胜者行或平局行、可选的强化提示行、双方连胜行
    """
    if result is RoundResult.DRAW:
        lines = ["\nThis round is a draw!\n"]
    else:
        winner = 1 if result is RoundResult.A_WINS else 2
        lines = [f"\n{player_label(winner)} wins this round!\n"]
    for slot in empowered:
        lines.append(f"\nWinstreak, Double damage activated for {player_label(slot)}!\n")
    lines.append(f"\nPlayer 1 Streak: {streaks[0]}, Player 2 Streak: {streaks[1]}\n")
    return "".join(lines)


# ==================== 数据模型 ====================

@dataclass(frozen=True)
class RoundReport:
    """一回合结算结果 (不可变)"""
    result: RoundResult
    summary: str
    empowered: tuple[int, ...]
    health: tuple[int, int]
    streaks: tuple[int, int]
    winner: int | None = None  # 对局胜者座位号，仅在对局结束时有值

    @property
    def finished(self) -> bool:
        return self.winner is not None


@dataclass
class MatchState:
    """对局权威状态: 两名玩家 + 存活标记"""
    players: tuple[PlayerState, PlayerState] = field(
        default_factory=lambda: (PlayerState(), PlayerState())
    )
    live: bool = True

    def player(self, slot: int) -> PlayerState:
        """按座位号 (1 或 2) 取玩家状态"""
        if slot not in PLAYER_SLOTS:
            raise ValueError(f"invalid player slot: {slot}")
        return self.players[slot - 1]

    def health_view(self, slot: int) -> tuple[int, int]:
        """指定座位视角的体力: (自己, 对手)"""
        me = self.player(slot)
        opponent = self.player(3 - slot)
        return me.health, opponent.health

    @property
    def winner(self) -> int | None:
        """对局胜者座位号；对局未结束返回 None"""
        if self.live:
            return None
        return 1 if self.players[0].is_alive else 2

    def apply_round(self, move_a: Move, move_b: Move) -> RoundReport:
        """结算一回合并返回结果

        Raises:
            MatchFinishedError: 对局已结束
        """
        raise_if_match_finished(self.live)

        result = resolve(move_a, move_b)
        empowered: tuple[int, ...] = ()

        if result is RoundResult.DRAW:
            for p in self.players:
                p.break_streak()
        else:
            winner_slot = 1 if result is RoundResult.A_WINS else 2
            winner = self.player(winner_slot)
            loser = self.player(3 - winner_slot)
            was_empowered = winner.is_empowered

            loser.take_damage(winner.damage)
            loser.break_streak()
            winner.record_win()

            if winner.is_empowered and not was_empowered:
                empowered = (winner_slot,)

        if not all(p.is_alive for p in self.players):
            self.live = False

        streaks = (self.players[0].win_streak, self.players[1].win_streak)
        report = RoundReport(
            result=result,
            summary=build_round_summary(result, empowered, streaks),
            empowered=empowered,
            health=(self.players[0].health, self.players[1].health),
            streaks=streaks,
            winner=self.winner,
        )
        logger.debug(
            "Round resolved: %s vs %s -> %s, health=%s streaks=%s",
            move_a.value, move_b.value, result.value, report.health, streaks,
        )
        return report

    def copy(self) -> MatchState:
        return MatchState(
            players=(self.players[0].copy(), self.players[1].copy()),
            live=self.live,
        )
