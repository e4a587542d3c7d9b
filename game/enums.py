"""出招、回合结果与对局阶段枚举

独立成模块，resolver / match / net 各层直接导入，避免循环依赖。
"""

from enum import Enum

from .exceptions import InvalidMoveError


class Move(Enum):
    """出招 (值即线上传输的单字符选择符)"""

    ROCK = "r"
    PAPER = "p"
    SCISSORS = "s"

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, symbol: str) -> "Move":
        """解析单字符选择符

        Raises:
            InvalidMoveError: 不是 r / p / s 之一
        """
        try:
            return cls(symbol)
        except ValueError:
            raise InvalidMoveError(symbol=symbol) from None


class RoundResult(Enum):
    """一回合的结算结果 (A = 1 号玩家, B = 2 号玩家)"""

    DRAW = "draw"
    A_WINS = "a_wins"
    B_WINS = "b_wins"


class Outcome(Enum):
    """单个玩家视角的回合结果"""

    DRAW = "draw"
    WIN = "win"
    LOSE = "lose"


class MatchPhase(Enum):
    """对局会话阶段"""

    WAITING_FOR_MOVES = "waiting_for_moves"  # 等待双方出招
    RESOLVING = "resolving"  # 结算中
    BROADCASTING = "broadcasting"  # 广播结果
    FINISHED = "finished"  # 已结束


class FinishReason(Enum):
    """对局结束原因"""

    DECISIVE = "decisive"  # 一方体力归零
    PEER_FAILURE = "peer_failure"  # 连接失败
