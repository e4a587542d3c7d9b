"""网络对战模块
基于 WebSocket 的 C/S 架构，一个服务端主持一场双人对局
"""

from .client import MoveClient
from .protocol import ClientMsg, MsgType, ServerMsg
from .server import GameServer
from .session import MatchOutcome, MatchSession, Participant

__all__ = [
    "MsgType", "ServerMsg", "ClientMsg",
    "GameServer", "MatchSession", "Participant", "MatchOutcome",
    "MoveClient",
]
