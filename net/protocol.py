"""网络协议定义
基于 WebSocket 的 JSON 消息格式

协议设计:
- 客户端 → 服务端: ClientMsg (出招)
- 服务端 → 客户端: ServerMsg (欢迎/回合摘要/体力/结束)
- 所有消息均为 JSON，包含 type 字段用于路由
- WebSocket 帧自带长度，文本不做 NUL 填充；可读文本上限 MAX_TEXT_BYTES
- 体力值以 JSON 整数传输，与主机字节序无关
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from game.enums import Move

# 可读文本 (欢迎/摘要/结束) 的 UTF-8 字节上限
MAX_TEXT_BYTES = 256


# ==================== 消息类型枚举 ====================

class MsgType(Enum):
    """网络消息类型"""

    # ---- Client → Server ----
    MOVE = "move"                       # 出招

    # ---- Server → Client ----
    WELCOME = "welcome"                 # 欢迎 (告知座位号)
    ROUND_RESULT = "round_result"       # 回合摘要
    HEALTH = "health"                   # 体力 (自己, 对手)
    GAME_OVER = "game_over"             # 对局结束
    MATCH_ABORTED = "match_aborted"     # 对手断线，对局中止
    ERROR = "error"                     # 错误



# ==================== 信封编解码 ====================

def _dump(msg_type: MsgType, data: dict[str, Any], timestamp: float, **extra: Any) -> str:
    envelope: dict[str, Any] = {"type": msg_type.value, **extra}
    envelope["timestamp"] = timestamp
    envelope["data"] = data
    return json.dumps(envelope, ensure_ascii=False)


def _load(raw: str | bytes) -> dict[str, Any]:
    obj = json.loads(raw)
    obj["type"] = MsgType(obj["type"])
    obj.setdefault("data", {})
    obj.setdefault("timestamp", 0.0)
    return obj


# ==================== 消息数据类 ====================

@dataclass
class ServerMsg:
    """服务端 → 客户端消息

    {"type": "health", "round": 3, "timestamp": 1706000000.0,
     "data": {"self": 90, "opponent": 70}}
    """
    type: MsgType
    data: dict[str, Any] = field(default_factory=dict)
    round: int = 0              # 回合序号 (欢迎消息为 0)
    timestamp: float = field(default_factory=time.time)

    def to_json(self) -> str:
        return _dump(self.type, self.data, self.timestamp, round=self.round)

    @classmethod
    def from_json(cls, raw: str | bytes) -> ServerMsg:
        obj = _load(raw)
        return cls(type=obj["type"], data=obj["data"],
                   round=obj.get("round", 0), timestamp=obj["timestamp"])

    # ---------- 工厂方法 ----------

    @classmethod
    def welcome(cls, slot: int, text: str) -> ServerMsg:
        return cls(type=MsgType.WELCOME, data={"slot": slot, "text": text})

    @classmethod
    def round_result(cls, text: str, round_no: int = 0) -> ServerMsg:
        """回合摘要 (双方收到相同内容)"""
        return cls(type=MsgType.ROUND_RESULT, round=round_no, data={"text": text})

    @classmethod
    def health(cls, self_hp: int, opponent_hp: int, round_no: int = 0) -> ServerMsg:
        """体力 (接收者视角: 自己在前, 对手在后)"""
        return cls(type=MsgType.HEALTH, round=round_no,
                   data={"self": self_hp, "opponent": opponent_hp})

    @classmethod
    def game_over(cls, winner: int, text: str, round_no: int = 0) -> ServerMsg:
        return cls(type=MsgType.GAME_OVER, round=round_no,
                   data={"winner": winner, "text": text})

    @classmethod
    def match_aborted(cls, failed_slot: int | None, text: str) -> ServerMsg:
        return cls(type=MsgType.MATCH_ABORTED,
                   data={"failed_slot": failed_slot, "text": text})

    @classmethod
    def error(cls, message: str, code: int = 400) -> ServerMsg:
        return cls(type=MsgType.ERROR, data={"message": message, "code": code})


@dataclass
class ClientMsg:
    """客户端 → 服务端消息

    {"type": "move", "timestamp": 1706000000.0, "data": {"move": "r"}}
    """
    type: MsgType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_json(self) -> str:
        return _dump(self.type, self.data, self.timestamp)

    @classmethod
    def from_json(cls, raw: str | bytes) -> ClientMsg:
        obj = _load(raw)
        return cls(type=obj["type"], data=obj["data"], timestamp=obj["timestamp"])

    @classmethod
    def move(cls, move: Move) -> ClientMsg:
        return cls(type=MsgType.MOVE, data={"move": move.value})


def text_fits(text: str) -> bool:
    """可读文本是否在 MAX_TEXT_BYTES 以内 (按 UTF-8 字节计)"""
    return len(text.encode("utf-8")) <= MAX_TEXT_BYTES
