# -*- coding: utf-8 -*-
"""
Rich 终端界面
Renders the move client's output: title banner, round summaries,
health bars and the final verdict.
"""

from __future__ import annotations

from rich.box import DOUBLE
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from game.constants import MAX_HEALTH

TITLE = "ROCK · PAPER · SCISSORS  ARENA"


def health_color(hp: int, max_hp: int = MAX_HEALTH) -> str:
    """满血: 绿  |  半血: 黄  |  危险: 红"""
    ratio = hp / max_hp if max_hp > 0 else 0
    if ratio > 0.5:
        return "green"
    if ratio > 0.25:
        return "yellow"
    return "red"


def health_bar(hp: int, max_hp: int = MAX_HEALTH) -> Text:
    """每 10 点体力一个 '='，后跟数值"""
    hp = max(0, min(hp, max_hp))
    filled = hp // 10
    empty = max_hp // 10 - filled
    bar = Text()
    bar.append("=" * filled, style=health_color(hp, max_hp))
    bar.append(" " * empty)
    bar.append(f" ({hp})")
    return bar


class ArenaConsole:
    """客户端终端输出"""

    def __init__(self, console: Console | None = None):
        self.console = console or Console(highlight=False)

    def show_banner(self) -> None:
        self.console.print(Panel(Text(TITLE, justify="center", style="bold"), box=DOUBLE))

    def show_welcome(self, text: str) -> None:
        self.console.print(text.rstrip("\n"), style="bold cyan", markup=False)
        self.console.print()

    def show_round_summary(self, text: str) -> None:
        self.console.print(text, markup=False)

    def show_health(self, self_hp: int, opponent_hp: int) -> None:
        line = Text("Your HP: ")
        line.append_text(health_bar(self_hp))
        self.console.print(line)
        self.console.print()
        line = Text("Opponent's HP: ")
        line.append_text(health_bar(opponent_hp))
        self.console.print(line)

    def show_game_over(self, text: str, won: bool) -> None:
        self.console.print()
        self.console.print(text.rstrip("\n"), markup=False)
        if won:
            self.console.print("Congratulations, You win!", style="bold green")
        else:
            self.console.print("Game Over, You lose!", style="bold red")

    def show_aborted(self, text: str) -> None:
        self.console.print()
        self.console.print(text.rstrip("\n"), style="bold yellow", markup=False)

    def show_error(self, message: str) -> None:
        self.console.print(Text(f"Error: {message}", style="red"))
