"""回合裁决模块

纯函数：给定双方出招，返回回合结果。3×3 全覆盖，无错误分支。
"""

from __future__ import annotations

from .enums import Move, Outcome, RoundResult

# key 克制 value
BEATS: dict[Move, Move] = {
    Move.ROCK: Move.SCISSORS,
    Move.SCISSORS: Move.PAPER,
    Move.PAPER: Move.ROCK,
}


def beats(move: Move, other: Move) -> bool:
    """move 是否克制 other"""
    return BEATS[move] is other


def resolve(move_a: Move, move_b: Move) -> RoundResult:
    """裁决一回合

    Args:
        move_a: 1 号玩家出招
        move_b: 2 号玩家出招

    Returns:
        相同出招为平局；A 克制 B 则 A 胜，否则 B 胜
    """
    if move_a is move_b:
        return RoundResult.DRAW
    if beats(move_a, move_b):
        return RoundResult.A_WINS
    return RoundResult.B_WINS


def outcome_for(result: RoundResult, slot: int) -> Outcome:
    """把回合结果换算成指定座位 (1 或 2) 的视角"""
    if result is RoundResult.DRAW:
        return Outcome.DRAW
    winner_slot = 1 if result is RoundResult.A_WINS else 2
    return Outcome.WIN if slot == winner_slot else Outcome.LOSE
