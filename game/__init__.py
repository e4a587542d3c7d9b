"""
猜拳对战核心模块
包含出招裁决、玩家状态、对局状态机和运行配置
"""

from .enums import FinishReason, MatchPhase, Move, Outcome, RoundResult
from .match import MatchState, RoundReport
from .phase_fsm import InvalidPhaseTransition, MatchFSM
from .player import PlayerState
from .resolver import beats, outcome_for, resolve

__all__ = [
    # 枚举
    'Move', 'RoundResult', 'Outcome', 'MatchPhase', 'FinishReason',
    # 裁决
    'resolve', 'beats', 'outcome_for',
    # 状态
    'PlayerState', 'MatchState', 'RoundReport',
    # 状态机
    'MatchFSM', 'InvalidPhaseTransition',
]

__version__ = '0.1.0'
