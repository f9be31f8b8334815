"""
Slack adapter event normalisation tests.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from RelayBot.transport.adapters.slack_adapter import SlackTransport

USERS = {"U1": "Alice", "U2": "bob", "U3": "Carol", "UBOT": "relaybot"}


@pytest.fixture
def transport() -> SlackTransport:
    slack = SlackTransport()
    web = AsyncMock()
    web.users_info.side_effect = lambda user: {"user": {"name": USERS[user]}}
    web.conversations_members.return_value = {"members": ["U1", "U2"]}
    slack._web = web
    slack._self_id = "UBOT"
    slack._channel_ids = {"#general": "C1"}
    slack._channel_names = {"C1": "#general"}
    return slack


@pytest.mark.asyncio
async def test_channel_message_is_normalised_and_mentions_rewritten(transport) -> None:
    handler = AsyncMock(return_value=True)
    transport.set_message_handler(handler)

    await transport._on_event(
        {
            "type": "message",
            "channel_type": "channel",
            "channel": "C1",
            "user": "U1",
            "text": "<@U2>++ thanks",
        }
    )

    handler.assert_awaited_once_with("slack", "Alice", "#general", "@bob++ thanks")
    assert transport.users("#general") == ["alice", "bob"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "event",
    [
        {"type": "message", "channel_type": "im", "channel": "D1", "user": "U1", "text": "hi"},
        {"type": "message", "channel_type": "channel", "channel": "C1", "user": "UBOT", "text": "hi"},
        {"type": "message", "subtype": "bot_message", "channel_type": "channel", "channel": "C1", "text": "hi"},
        {"type": "reaction_added", "channel": "C1", "user": "U1"},
    ],
)
async def test_non_channel_user_messages_are_ignored(transport, event) -> None:
    handler = AsyncMock(return_value=True)
    transport.set_message_handler(handler)

    await transport._on_event(event)

    handler.assert_not_awaited()


@pytest.mark.asyncio
async def test_say_and_notice_post_to_channel_id(transport) -> None:
    await transport.send_message("#general", "hello")
    await transport.send_message("general", "notice", notice=True)
    await transport.send_message("#nowhere", "lost")

    calls = [c.kwargs for c in transport._web.chat_postMessage.await_args_list]
    assert calls == [
        {"channel": "C1", "text": "hello"},
        {"channel": "C1", "text": "notice"},
    ]


def test_users_for_unknown_channel_is_empty(transport) -> None:
    assert transport.users("#nowhere") == []
    assert transport.users("#general") == []


@pytest.mark.asyncio
async def test_member_events_keep_roster_current(transport) -> None:
    await transport.refresh_members("C1")
    assert transport.users("#general") == ["alice", "bob"]

    await transport._on_event({"type": "member_joined_channel", "channel": "C1", "user": "U3"})
    await transport._on_event({"type": "member_left_channel", "channel": "C1", "user": "U2"})

    assert transport.users("#general") == ["alice", "carol"]
    transport._web.conversations_members.assert_awaited_once_with(channel="C1")


@pytest.mark.asyncio
async def test_member_event_for_uncached_channel_fetches_roster(transport) -> None:
    await transport._on_event({"type": "member_joined_channel", "channel": "C1", "user": "U1"})

    assert transport.users("#general") == ["alice", "bob"]


@pytest.mark.asyncio
async def test_bot_leaving_channel_drops_its_roster(transport) -> None:
    await transport.refresh_members("C1")

    await transport._on_event({"type": "member_left_channel", "channel": "C1", "user": "UBOT"})

    assert transport.users("#general") == []
