from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from suppressor.datatypes.discord_datatypes import ChannelID, MessageID
from suppressor.util import discord_utils
from suppressor.util.discord_utils import DiscordRestClient


def make_bot(user_id=1):
    http = SimpleNamespace(
        delete_message=AsyncMock(),
        edit_message=AsyncMock(),
        send_message=AsyncMock(return_value={"id": "555"}),
    )
    user = SimpleNamespace(id=user_id) if user_id is not None else None
    return SimpleNamespace(http=http, user=user, change_presence=AsyncMock())


@pytest.mark.asyncio
async def test_delete_message_uses_raw_ids():
    bot = make_bot()

    await DiscordRestClient(bot).delete_message(ChannelID(10), MessageID(20))  # type: ignore[arg-type]

    bot.http.delete_message.assert_awaited_once_with(10, 20)


@pytest.mark.asyncio
async def test_suppress_embeds_sets_the_message_flag():
    bot = make_bot()

    await DiscordRestClient(bot).suppress_embeds(ChannelID(10), MessageID(20))  # type: ignore[arg-type]

    bot.http.edit_message.assert_awaited_once_with(10, 20, flags=discord_utils.SUPPRESS_EMBEDS_FLAGS)
    assert discord_utils.SUPPRESS_EMBEDS_FLAGS == 4


@pytest.mark.asyncio
async def test_create_message_as_reply_returns_new_id():
    bot = make_bot()

    created = await DiscordRestClient(bot).create_message(ChannelID(10), "hi", reply_to=MessageID(20))  # type: ignore[arg-type]

    assert created == MessageID(555)
    bot.http.send_message.assert_awaited_once_with(
        10,
        "hi",
        allowed_mentions={"parse": ["users"], "replied_user": False},
        message_reference={"message_id": 20, "channel_id": 10, "fail_if_not_exists": False},
    )


@pytest.mark.asyncio
async def test_create_message_without_reply_has_no_reference():
    bot = make_bot()

    await DiscordRestClient(bot).create_message(ChannelID(10), "hi")  # type: ignore[arg-type]

    assert bot.http.send_message.await_args.kwargs["message_reference"] is None


def test_should_process_message_filters_dms_and_self():
    bot = make_bot(user_id=1)
    guild = SimpleNamespace(id=9)

    assert discord_utils.should_process_message(bot, SimpleNamespace(guild=guild, author=SimpleNamespace(id=2)))  # type: ignore[arg-type]
    assert not discord_utils.should_process_message(bot, SimpleNamespace(guild=None, author=SimpleNamespace(id=2)))  # type: ignore[arg-type]
    assert not discord_utils.should_process_message(bot, SimpleNamespace(guild=guild, author=SimpleNamespace(id=1)))  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_update_presence_reflects_incident():
    bot = make_bot()

    await discord_utils.update_presence(bot, down=True, service_name="SponsorBlock")  # type: ignore[arg-type]
    kwargs = bot.change_presence.await_args.kwargs
    assert kwargs["status"] == discord.Status.dnd
    assert kwargs["activity"].name == "SponsorBlock being down"

    await discord_utils.update_presence(bot, down=False, service_name="SponsorBlock")  # type: ignore[arg-type]
    kwargs = bot.change_presence.await_args.kwargs
    assert kwargs["status"] == discord.Status.online
    assert kwargs["activity"].type == discord.ActivityType.watching


@pytest.mark.asyncio
async def test_update_presence_waits_for_login():
    bot = make_bot(user_id=None)

    await discord_utils.update_presence(bot, down=True, service_name="SponsorBlock")  # type: ignore[arg-type]

    bot.change_presence.assert_not_awaited()
