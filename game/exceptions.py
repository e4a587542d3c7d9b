"""游戏异常模块
定义猜拳对战中的各类异常，提供明确的错误类型和信息
"""


class GameError(Exception):
    """游戏异常基类

    所有游戏相关的异常都应该继承此类，
    提供统一的异常处理接口。
    """

    def __init__(self, message: str, details: dict | None = None):
        """初始化游戏异常

        Args:
            message: 错误消息
            details: 额外的错误详情（可选）
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# ==================== 出招相关异常 ====================


class InvalidMoveError(GameError):
    """无效出招异常

    当收到的符号不是 r / p / s 之一时抛出
    """

    def __init__(self, message: str | None = None, symbol: str | None = None):
        if message is None:
            message = "无效的出招"
        details = {}
        if symbol is not None:
            details["symbol"] = symbol
        super().__init__(message, details)
        self.symbol = symbol


# ==================== 状态相关异常 ====================


class GameStateError(GameError):
    """游戏状态异常基类"""

    def __init__(
        self,
        message: str | None = None,
        current_state: str | None = None,
        expected_state: str | None = None,
    ):
        if message is None:
            message = "游戏状态错误"
        details = {}
        if current_state:
            details["current_state"] = current_state
        if expected_state:
            details["expected_state"] = expected_state
        super().__init__(message, details)
        self.current_state = current_state
        self.expected_state = expected_state


class MatchFinishedError(GameStateError):
    """对局已结束异常

    对已结束的对局继续结算回合时抛出
    """

    def __init__(self, message: str | None = None):
        if message is None:
            message = "对局已结束"
        super().__init__(message, current_state="finished")


class InvalidPhaseError(GameStateError):
    """阶段错误异常"""

    def __init__(
        self,
        message: str | None = None,
        current_phase: str | None = None,
        expected_phase: str | None = None,
    ):
        if message is None:
            message = "当前阶段不允许此操作"
        super().__init__(message, current_state=current_phase, expected_state=expected_phase)
        self.current_phase = current_phase
        self.expected_phase = expected_phase


# ==================== 网络相关异常 ====================


class NetworkError(GameError):
    """网络异常基类"""


class SetupError(NetworkError):
    """传输建立失败 (监听/连接失败)

    在对局开始之前发生，进程应直接退出
    """

    def __init__(self, message: str | None = None, address: str | None = None):
        if message is None:
            message = "无法建立网络连接"
        details = {}
        if address:
            details["address"] = address
        super().__init__(message, details)
        self.address = address


class PeerIOError(NetworkError):
    """对局进行中收发失败

    只终结当前对局，不重试、不重连
    """

    def __init__(self, message: str | None = None, player_slot: int | None = None):
        if message is None:
            message = "与玩家的连接中断"
        details = {}
        if player_slot is not None:
            details["player_slot"] = player_slot
        super().__init__(message, details)
        self.player_slot = player_slot


class MoveTimeoutError(PeerIOError):
    """等待出招超时"""

    def __init__(self, player_slot: int | None = None, timeout: float | None = None):
        super().__init__("等待出招超时", player_slot=player_slot)
        if timeout is not None:
            self.details["timeout"] = timeout
        self.timeout = timeout


class LocalInputClosedError(GameError):
    """本地输入流已关闭 (EOF)"""

    def __init__(self, message: str | None = None):
        super().__init__(message or "本地输入已关闭")


# ==================== 辅助函数 ====================


def raise_if_match_finished(live: bool) -> None:
    """如果对局已结束则抛出异常

    Args:
        live: 对局是否仍在进行

    Raises:
        MatchFinishedError: 如果对局已结束
    """
    if not live:
        raise MatchFinishedError()
