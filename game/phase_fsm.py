"""对局阶段有限状态机 (Match FSM)

提供对局会话阶段的合法转换验证，防止非法阶段跳转。
例如：不能从等待出招直接跳到广播，必须先经过结算阶段。
"""

from __future__ import annotations

import logging

from .enums import MatchPhase
from .exceptions import InvalidPhaseError

logger = logging.getLogger(__name__)

# 合法的阶段转换表
# key: 当前阶段, value: 允许转换到的目标阶段集合
VALID_TRANSITIONS: dict[MatchPhase, set[MatchPhase]] = {
    MatchPhase.WAITING_FOR_MOVES: {MatchPhase.RESOLVING, MatchPhase.FINISHED},  # 断线直接结束
    MatchPhase.RESOLVING: {MatchPhase.BROADCASTING},
    MatchPhase.BROADCASTING: {MatchPhase.WAITING_FOR_MOVES, MatchPhase.FINISHED},
    MatchPhase.FINISHED: set(),  # 终态
}


class InvalidPhaseTransition(InvalidPhaseError):
    """非法阶段转换异常

    当尝试进行不合法的阶段转换时抛出，
    例如从 RESOLVING 直接跳到 FINISHED。
    """

    def __init__(
        self,
        current_phase: MatchPhase,
        target_phase: MatchPhase,
    ):
        message = f"Invalid phase transition: {current_phase.name} → {target_phase.name}"
        super().__init__(
            message=message,
            current_phase=current_phase.name,
            expected_phase=target_phase.name,
        )
        self.from_phase = current_phase
        self.to_phase = target_phase


class MatchFSM:
    """对局阶段有限状态机

    管理当前阶段状态，并在转换时校验合法性。

    使用方式::

        fsm = MatchFSM()
        fsm.transition(MatchPhase.RESOLVING)   # OK: WAITING_FOR_MOVES → RESOLVING
        fsm.transition(MatchPhase.FINISHED)    # 抛出 InvalidPhaseTransition
    """

    def __init__(self) -> None:
        self._phase: MatchPhase = MatchPhase.WAITING_FOR_MOVES

    @property
    def current(self) -> MatchPhase:
        """当前阶段"""
        return self._phase

    @property
    def is_finished(self) -> bool:
        return self._phase == MatchPhase.FINISHED

    def transition(self, target: MatchPhase) -> None:
        """转换到目标阶段

        Args:
            target: 目标阶段

        Raises:
            InvalidPhaseTransition: 如果转换不合法
        """
        if not self.can_transition(target):
            raise InvalidPhaseTransition(self._phase, target)
        logger.debug("Phase transition: %s → %s", self._phase.name, target.name)
        self._phase = target

    def can_transition(self, target: MatchPhase) -> bool:
        """检查是否可以转换到目标阶段"""
        return target in VALID_TRANSITIONS.get(self._phase, set())
