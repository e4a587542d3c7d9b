# -*- coding: utf-8 -*-
"""
UI模块
提供客户端终端显示与出招输入
"""

from .input_safety import read_move, safe_input
from .rich_ui import ArenaConsole, health_bar

__all__ = ['ArenaConsole', 'health_bar', 'read_move', 'safe_input']
