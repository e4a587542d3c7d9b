"""运行配置中心 (SSOT - 单一事实来源)

所有可配置的运行参数应在此定义，支持从环境变量覆盖。
规则数值 (体力/伤害/连胜阈值) 见 constants.py，不可配置。
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _get_env_float(key: str, default: float) -> float:
    """从环境变量获取浮点数配置"""
    value = os.environ.get(key)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            pass
    return default


def _get_env_int(key: str, default: int) -> int:
    """从环境变量获取整数配置"""
    value = os.environ.get(key)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            pass
    return default


def _get_env_bool(key: str, default: bool) -> bool:
    """从环境变量获取布尔配置"""
    value = os.environ.get(key, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    elif value in ("false", "0", "no", "off"):
        return False
    return default


@dataclass(frozen=True)
class GameConfig:
    """运行配置类 (不可变)

    所有配置项支持通过环境变量覆盖：
    - ARENA_HOST: 服务端监听地址
    - ARENA_PORT: 服务端监听端口
    - ARENA_MOVE_TIMEOUT: 等待出招超时秒数 (0 表示不限时)
    - ARENA_MAX_MSG_SIZE: 单条 WebSocket 消息最大字节数
    - ARENA_LOG_LEVEL: 日志级别
    - ARENA_DEBUG: 调试模式
    """
    # ==================== 网络配置 ====================
    host: str = field(
        default_factory=lambda: os.environ.get("ARENA_HOST", "0.0.0.0")
    )
    port: int = field(
        default_factory=lambda: _get_env_int("ARENA_PORT", 8765)
    )
    move_timeout: float = field(
        default_factory=lambda: _get_env_float("ARENA_MOVE_TIMEOUT", 0.0)
    )
    max_message_size: int = field(
        default_factory=lambda: _get_env_int("ARENA_MAX_MSG_SIZE", 4096)
    )

    # ==================== 日志与调试 ====================
    log_level: str = field(
        default_factory=lambda: os.environ.get("ARENA_LOG_LEVEL", "INFO")
    )
    debug_mode: bool = field(
        default_factory=lambda: _get_env_bool("ARENA_DEBUG", False)
    )

    @property
    def move_timeout_or_none(self) -> float | None:
        """超时为 0 或负数时视为不限时"""
        return self.move_timeout if self.move_timeout > 0 else None

    def validate(self) -> list[str]:
        """校验配置，返回错误列表 (空列表表示合法)"""
        errors: list[str] = []
        if not 0 <= self.port <= 65535:
            errors.append(f"port 必须在 0-65535 之间，当前 {self.port}")
        if self.move_timeout < 0:
            errors.append(f"move_timeout 不能为负数，当前 {self.move_timeout}")
        if self.max_message_size < 1024:
            errors.append(f"max_message_size 不能小于 1024，当前 {self.max_message_size}")
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"log_level 无效: {self.log_level!r}")
        return errors

    @classmethod
    def from_env(cls) -> GameConfig:
        """从环境变量创建配置实例"""
        return cls()


# 全局配置单例
_config: GameConfig | None = None


def get_config() -> GameConfig:
    """获取全局配置实例（懒加载）"""
    global _config
    if _config is None:
        _config = GameConfig.from_env()
    return _config


def reset_config() -> None:
    """重置配置（用于测试）"""
    global _config
    _config = None
