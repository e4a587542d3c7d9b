"""
玩家状态模块
定义单个参赛者的体力、连胜和伤害状态
"""

from __future__ import annotations

from dataclasses import dataclass

from .constants import BASE_DAMAGE, EMPOWERED_DAMAGE, MAX_HEALTH, STREAK_THRESHOLD


@dataclass
class PlayerState:
    """
    玩家状态

    由对局会话独占，每个完成的回合修改一次。
    health 只减不增，最低为 0。
    """
    health: int = MAX_HEALTH
    win_streak: int = 0
    damage: int = BASE_DAMAGE

    @property
    def is_alive(self) -> bool:
        return self.health > 0

    @property
    def is_empowered(self) -> bool:
        return self.damage == EMPOWERED_DAMAGE

    def take_damage(self, amount: int) -> int:
        """
        受到伤害 (体力截断到 0)

        Args:
            amount: 伤害值

        Returns:
            实际扣除的体力
        """
        old = self.health
        self.health = max(0, self.health - amount)
        return old - self.health

    def record_win(self) -> None:
        """赢下一回合：连胜 +1，并按连胜数重新计算伤害"""
        self.win_streak += 1
        self.damage = EMPOWERED_DAMAGE if self.win_streak >= STREAK_THRESHOLD else BASE_DAMAGE

    def break_streak(self) -> None:
        """平局或输掉回合：连胜清零，伤害恢复基础值"""
        self.win_streak = 0
        self.damage = BASE_DAMAGE

    def copy(self) -> PlayerState:
        return PlayerState(health=self.health, win_streak=self.win_streak, damage=self.damage)
