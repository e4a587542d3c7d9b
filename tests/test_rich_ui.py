"""Rich 终端界面测试"""

from io import StringIO

import pytest
from rich.console import Console

from ui.rich_ui import TITLE, ArenaConsole, health_bar, health_color


def _ui():
    out = StringIO()
    return ArenaConsole(Console(file=out, width=80, color_system=None)), out


class TestHealthBar:
    @pytest.mark.parametrize("hp, expected", [
        (100, "========== (100)"),
        (90, "=========  (90)"),
        (55, "=====      (55)"),
        (0, "           (0)"),
    ])
    def test_plain_rendering(self, hp, expected):
        assert health_bar(hp).plain == expected

    def test_out_of_range_is_clamped(self):
        assert health_bar(-5).plain.endswith("(0)")
        assert health_bar(150).plain == "========== (100)"

    def test_colors(self):
        assert health_color(100) == "green"
        assert health_color(40) == "yellow"
        assert health_color(20) == "red"
        assert health_color(0) == "red"


class TestArenaConsole:
    def test_banner(self):
        ui, out = _ui()
        ui.show_banner()
        assert TITLE in out.getvalue()

    def test_health_self_first(self):
        ui, out = _ui()
        ui.show_health(70, 30)
        text = out.getvalue()
        assert text.index("Your HP:") < text.index("Opponent's HP:")
        assert "(70)" in text and "(30)" in text

    def test_server_text_not_parsed_as_markup(self):
        ui, out = _ui()
        ui.show_round_summary("[bold]Player 1[/bold] wins")
        assert "[bold]Player 1[/bold] wins" in out.getvalue()

    def test_game_over_verdicts(self):
        ui, out = _ui()
        ui.show_game_over("Game over, Player 2 Wins!\n", won=False)
        assert "Game over, Player 2 Wins!" in out.getvalue()
        assert "Game Over, You lose!" in out.getvalue()

        ui, out = _ui()
        ui.show_game_over("Game over, Player 2 Wins!\n", won=True)
        assert "Congratulations, You win!" in out.getvalue()

    def test_error_with_brackets(self):
        ui, out = _ui()
        ui.show_error("bad [frame]")
        assert "Error: bad [frame]" in out.getvalue()
