# -*- coding: utf-8 -*-
"""
安全输入模块
封装 input() 以优雅处理 EOFError 和 KeyboardInterrupt，并提供出招输入循环
"""

from __future__ import annotations

from collections.abc import Callable

from game.enums import Move
from game.exceptions import InvalidMoveError, LocalInputClosedError

MOVE_PROMPT = "Enter your choice (Rock [r], Paper [p], Scissors [s]): "
RETRY_PROMPT = "Invalid input. Please enter 'r', 'p', or 's': "


def safe_input(prompt: str = "") -> str:
    """input() 的安全封装，防止 EOFError / KeyboardInterrupt 导致崩溃。

    Args:
        prompt: 输入提示文字

    Returns:
        用户输入的字符串

    Raises:
        LocalInputClosedError: 输入流已关闭 (管道结束或无头环境)
        SystemExit: 当用户按 Ctrl+C 时，执行干净退出
    """
    try:
        return input(prompt)
    except EOFError:
        raise LocalInputClosedError() from None
    except KeyboardInterrupt:
        # Ctrl+C: 换行后干净退出
        print()
        raise SystemExit(0)


def parse_move_input(raw: str) -> Move | None:
    """把一行输入解析为出招；只接受单个小写字符 r / p / s (忽略首尾空白)"""
    text = raw.strip()
    if len(text) != 1:
        return None
    try:
        return Move.parse(text)
    except InvalidMoveError:
        return None


def read_move(input_fn: Callable[[str], str] = safe_input) -> Move:
    """反复提示直到输入合法出招

    非法输入只在本地重新提示，不会发送给服务端。
    """
    move = parse_move_input(input_fn(MOVE_PROMPT))
    while move is None:
        move = parse_move_input(input_fn(RETRY_PROMPT))
    return move
