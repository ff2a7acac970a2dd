"""
discord_utils.py
================

Low-level Discord helpers for Suppressor.

:class:`DiscordRestClient` implements the outbound interface of the moderation
core on top of py-cord's HTTP client, so no message or channel object needs to
be cached for the bot to delete, edit or reply.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import discord

from suppressor.datatypes.discord_datatypes import ChannelID, MessageID
from suppressor.util.logger import get_logger

logger = get_logger("discord_utils")

SUPPRESS_EMBEDS_FLAGS = discord.MessageFlags(suppress_embeds=True).value

# Companion messages may ping the author they address, never roles or @everyone
COMPANION_ALLOWED_MENTIONS: Dict[str, Any] = {"parse": ["users"], "replied_user": False}


class DiscordRestClient:
    """Delete, suppress-embeds and create calls against the Discord REST API."""

    def __init__(self, discord_bot_instance: discord.Bot) -> None:
        self.bot = discord_bot_instance

    async def delete_message(self, channel_id: ChannelID, message_id: MessageID) -> None:
        await self.bot.http.delete_message(channel_id.to_int(), message_id.to_int())

    async def suppress_embeds(self, channel_id: ChannelID, message_id: MessageID) -> None:
        await self.bot.http.edit_message(channel_id.to_int(), message_id.to_int(), flags=SUPPRESS_EMBEDS_FLAGS)

    async def create_message(
        self,
        channel_id: ChannelID,
        content: str,
        *,
        reply_to: Optional[MessageID] = None,
    ) -> MessageID:
        reference = None
        if reply_to is not None:
            reference = {
                "message_id": reply_to.to_int(),
                "channel_id": channel_id.to_int(),
                "fail_if_not_exists": False,
            }
        payload = await self.bot.http.send_message(
            channel_id.to_int(),
            content,
            allowed_mentions=COMPANION_ALLOWED_MENTIONS,
            message_reference=reference,
        )
        return MessageID(payload["id"])


def is_own_message(bot: discord.Bot, message: discord.Message) -> bool:
    """True for messages authored by this bot."""
    return bot.user is not None and message.author.id == bot.user.id


def should_process_message(bot: discord.Bot, message: discord.Message) -> bool:
    """Filter applied by the listeners before building a content event.

    Only guild messages from someone other than this bot are moderated.
    """
    if message.guild is None:
        return False
    return not is_own_message(bot, message)


async def update_presence(bot: discord.Bot, *, down: bool, service_name: str) -> None:
    """Show the incident state in the bot's "Watching ..." activity."""
    if bot.user is None:
        return
    if down:
        status = discord.Status.dnd
        activity_name = f"{service_name} being down"
    else:
        status = discord.Status.online
        activity_name = "for stickers and outage reports"
    await bot.change_presence(
        status=status,
        activity=discord.Activity(type=discord.ActivityType.watching, name=activity_name),
    )
