"""
Command table collection and trigger matching.
"""

from __future__ import annotations

import pytest

from RelayBot.plugin.commands import build_pattern, collect_commands, match_command


class Base:
    def cmd_alpha(self, *args):
        """First command.

        More detail that is not part of the description.
        """

    def cmd_beta(self, *args):
        pass

    def helper(self):
        pass

    cmd_ = None


class Child(Base):
    def cmd_gamma(self, *args):
        """Third."""

    def cmd_alpha(self, *args):
        """Overridden alpha."""

    cmd_g = cmd_gamma


def test_collect_commands_in_declaration_order() -> None:
    table = collect_commands(Base)

    assert [c.name for c in table] == ["alpha", "beta"]
    assert table[0].member == "cmd_alpha"
    assert table[0].description == "First command."
    assert table[1].description == ""


def test_overridden_command_keeps_position_and_aliases_are_collected() -> None:
    table = collect_commands(Child)

    assert [c.name for c in table] == ["alpha", "beta", "gamma", "g"]
    assert table[0].description == "Overridden alpha."


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("!echo", ("echo", None)),
        ("!echo hello world", ("echo", "hello world")),
        ("!echo ", ("echo", "")),
        ("!echoall loud", ("echoall", "loud")),
        ("!echoall", ("echoall", None)),
        ("echo hello", None),
        ("!ech", None),
        ("!echox", None),
        (" !echo", None),
    ],
)
def test_match_command(text, expected) -> None:
    assert match_command(text, "!", ["echo", "echoall"]) == expected


def test_trigger_is_escaped() -> None:
    assert match_command(".ping", ".", ["ping"]) == ("ping", None)
    assert match_command("xping", ".", ["ping"]) is None
    assert match_command("$$ping now", "$$", ["ping"]) == ("ping", "now")


def test_no_commands_never_matches() -> None:
    assert build_pattern("!", []) is None
    assert match_command("!anything", "!", []) is None
