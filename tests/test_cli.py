import pytest

from twelve_pieces import cli


@pytest.mark.parametrize(
    "text, expected",
    [
        ("3 2", (3, 2)),
        ("3,2", (3, 2)),
        (" 0  4 ", (0, 4)),
        ("5 0", None),
        ("a b", None),
        ("1", None),
    ],
)
def test_parse_position(text: str, expected) -> None:
    assert cli._parse_position(text) == expected


def test_ai_vs_ai_match_finishes(capsys) -> None:
    assert cli.main(["--mode", "ai-vs-ai", "--depth", "1"]) == 0

    out = capsys.readouterr().out
    assert "Game start!" in out
    assert "AI vs AI match complete." in out


def test_human_quits_immediately(monkeypatch, capsys) -> None:
    answers = iter(["B", "q"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))

    assert cli.main(["--mode", "ai", "--depth", "1"]) == 0
    assert "Thanks for playing!" in capsys.readouterr().out
