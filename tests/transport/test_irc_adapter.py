"""
IRC adapter event handling tests.

The irc library's reactor is never started; events are fed straight into
the adapter's handlers.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from RelayBot.transport.adapters.irc_adapter import IRCTransport, strip_nick
from tests.conftest import make_config


def event(source: str = "", target: str = "", arguments: list[str] | None = None):
    return SimpleNamespace(
        source=SimpleNamespace(nick=source),
        target=target,
        arguments=arguments or [],
    )


@pytest.fixture
def connection() -> MagicMock:
    conn = MagicMock()
    conn.get_nickname.return_value = "relaybot"
    return conn


@pytest.fixture
def transport() -> IRCTransport:
    config = make_config(
        {
            "transports": {
                "irc": {
                    "channels": ["#one", "#two"],
                    "nickserv_password": "hunter2",
                }
            }
        }
    )
    return IRCTransport(config)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("@Op", "op"), ("+voice", "voice"), ("%half", "half"), ("~Owner ", "owner"), ("plain", "plain")],
)
def test_strip_nick(raw: str, expected: str) -> None:
    assert strip_nick(raw) == expected


@pytest.mark.asyncio
async def test_welcome_identifies_and_joins(transport, connection) -> None:
    transport._welcomed = asyncio.Event()

    transport._on_welcome(connection, event())

    connection.privmsg.assert_called_once_with("NickServ", "identify hunter2")
    assert [c.args for c in connection.join.call_args_list] == [("#one",), ("#two",)]
    assert transport._welcomed.is_set()


def test_roster_tracks_names_joins_parts_and_nicks(transport, connection) -> None:
    transport._on_namreply(
        connection, event(arguments=["=", "#One", "@Alice +bob carol"])
    )
    assert transport.users("#one") == ["alice", "bob", "carol"]

    transport._on_join(connection, event(source="Dave", target="#one"))
    transport._on_part(connection, event(source="bob", target="#one"))
    transport._on_nick(connection, event(source="carol", target="Caz"))
    transport._on_kick(connection, event(source="alice", target="#one", arguments=["dave"]))

    assert transport.users("#ONE") == ["alice", "caz"]

    transport._on_quit(connection, event(source="Alice"))
    assert transport.users("#one") == ["caz"]
    assert transport.users("#unknown") == []


def test_own_part_forgets_the_channel(transport, connection) -> None:
    transport._on_namreply(connection, event(arguments=["=", "#one", "alice"]))
    transport._on_part(connection, event(source="relaybot", target="#one"))

    assert transport.users("#one") == []


@pytest.mark.asyncio
async def test_public_message_is_submitted(transport, connection) -> None:
    handler = AsyncMock(return_value=True)
    transport.set_message_handler(handler)

    transport._on_pubmsg(
        connection, event(source="alice", target="#one", arguments=["!echo hi"])
    )
    await asyncio.gather(*transport._tasks)

    handler.assert_awaited_once_with("irc", "alice", "#one", "!echo hi")


@pytest.mark.asyncio
async def test_send_message_splits_lines_and_uses_notice(transport, connection) -> None:
    transport._connection = connection

    await transport.send_message("#one", "line one\nline two")
    await transport.send_message("#one", "heads up", notice=True)

    assert [c.args for c in connection.privmsg.call_args_list] == [
        ("#one", "line one"),
        ("#one", "line two"),
    ]
    connection.notice.assert_called_once_with("#one", "heads up")


@pytest.mark.asyncio
async def test_open_retries_then_gives_up(monkeypatch) -> None:
    transport = IRCTransport(
        make_config(
            {"transports": {"irc": {"connect_attempts": 3, "connect_attempt_delay": 0}}}
        )
    )
    attempts: list[int] = []

    async def refuse() -> None:
        attempts.append(1)
        raise OSError("connection refused")

    monkeypatch.setattr(transport, "_open_once", refuse)

    with pytest.raises(OSError):
        await transport.open()

    assert len(attempts) == 3
