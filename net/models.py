"""网络消息 Pydantic 校验模型

为 net/protocol.py 中的 ClientMsg / ServerMsg 提供严格的输入校验。
服务端在收到出招帧时、客户端在收到服务端帧时，都先经 Pydantic 模型校验，
再构造内部消息对象，拒绝不合法的字段。

设计原则:
  - 校验模型与内部 dataclass 分离 (校验层 vs 业务层)
  - 校验失败抛出 pydantic.ValidationError，由调用方统一处理
  - 使用 model_config = ConfigDict(extra="forbid") 防止未知字段注入
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from game.constants import MAX_HEALTH

from .protocol import MAX_TEXT_BYTES, MsgType, text_fits

CLIENT_TYPES = frozenset({MsgType.MOVE.value})
SERVER_TYPES = frozenset(t.value for t in MsgType) - CLIENT_TYPES


def _check_text(v: str) -> str:
    if not text_fits(v):
        raise ValueError(f"文本超过 {MAX_TEXT_BYTES} 字节上限")
    return v


# 受 MAX_TEXT_BYTES 约束的可读文本
BoundedText = Annotated[str, AfterValidator(_check_text)]


# ====================================================================== #
#  客户端 → 服务端 消息校验模型                                             #
# ====================================================================== #


class ClientMsgModel(BaseModel):
    """客户端消息校验模型"""

    model_config = ConfigDict(extra="forbid")

    type: str
    timestamp: float = 0.0
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("type")
    @classmethod
    def type_is_client_type(cls, v: str) -> str:
        if v not in CLIENT_TYPES:
            raise ValueError(f"未知的客户端消息类型: {v!r}")
        return v


class MoveData(BaseModel):
    """move 消息的 data 校验"""

    model_config = ConfigDict(extra="forbid")

    move: Literal["r", "p", "s"]


# ====================================================================== #
#  服务端 → 客户端 消息校验模型                                             #
# ====================================================================== #


class ServerMsgModel(BaseModel):
    """服务端消息校验模型"""

    model_config = ConfigDict(extra="forbid")

    type: str
    round: int = Field(default=0, ge=0)
    timestamp: float = 0.0
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("type")
    @classmethod
    def type_is_server_type(cls, v: str) -> str:
        if v not in SERVER_TYPES:
            raise ValueError(f"未知的服务端消息类型: {v!r}")
        return v


class WelcomeData(BaseModel):
    """welcome 消息的 data 校验"""

    model_config = ConfigDict(extra="forbid")

    slot: int = Field(ge=1, le=2)
    text: BoundedText


class RoundResultData(BaseModel):
    """round_result 消息的 data 校验"""

    model_config = ConfigDict(extra="forbid")

    text: BoundedText


class HealthData(BaseModel):
    """health 消息的 data 校验 (自己在前, 对手在后)"""

    model_config = ConfigDict(extra="forbid")

    self_hp: int = Field(alias="self", ge=0, le=MAX_HEALTH)
    opponent_hp: int = Field(alias="opponent", ge=0, le=MAX_HEALTH)


class GameOverData(BaseModel):
    """game_over 消息的 data 校验"""

    model_config = ConfigDict(extra="forbid")

    winner: int = Field(ge=1, le=2)
    text: BoundedText


class MatchAbortedData(BaseModel):
    """match_aborted 消息的 data 校验"""

    model_config = ConfigDict(extra="forbid")

    failed_slot: int | None = Field(default=None, ge=1, le=2)
    text: BoundedText


class ErrorData(BaseModel):
    """error 消息的 data 校验"""

    model_config = ConfigDict(extra="forbid")

    message: str = Field(min_length=1, max_length=500)
    code: int = 400


# ====================================================================== #
#  消息类型 → data 校验模型映射                                              #
# ====================================================================== #

DATA_VALIDATORS: dict[str, type[BaseModel]] = {
    "move": MoveData,
    "welcome": WelcomeData,
    "round_result": RoundResultData,
    "health": HealthData,
    "game_over": GameOverData,
    "match_aborted": MatchAbortedData,
    "error": ErrorData,
}


def validate_client_message(raw_json: str | bytes) -> MoveData:
    """校验客户端发来的原始 JSON，返回经过校验的出招数据。

    流程:
      1. 用 ClientMsgModel.model_validate_json 校验外层结构
      2. 根据 type 字段查找 DATA_VALIDATORS 校验 data 子结构

    Raises:
        pydantic.ValidationError: 校验失败
    """
    msg = ClientMsgModel.model_validate_json(raw_json)
    return DATA_VALIDATORS[msg.type].model_validate(msg.data)


def validate_server_message(raw_json: str | bytes) -> ServerMsgModel:
    """校验服务端发来的原始 JSON (客户端使用)。

    Raises:
        pydantic.ValidationError: 校验失败
    """
    msg = ServerMsgModel.model_validate_json(raw_json)
    DATA_VALIDATORS[msg.type].model_validate(msg.data)
    return msg
