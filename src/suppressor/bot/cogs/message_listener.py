"""Message listener Cog for Suppressor.

Turns message creations, edits and reactions into pipeline events.
"""

import discord
from discord.ext import commands

from suppressor.bot.runtime import ModerationRuntime
from suppressor.datatypes.moderation_datatypes import ContentEvent, ReactionEvent
from suppressor.util import discord_utils
from suppressor.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """Cog responsible for feeding gateway events into the moderation pipeline."""

    def __init__(self, discord_bot_instance, runtime: ModerationRuntime):
        self.bot = discord_bot_instance
        self.pipeline = runtime.pipeline
        logger.info("[MESSAGE LISTENER] Message listener cog loaded")

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        if not discord_utils.should_process_message(self.bot, message):
            return

        decision = await self.pipeline.handle_message(ContentEvent.from_message(message))
        logger.debug(f"Message {message.id} in {message.channel.id}: {decision}")

    @commands.Cog.listener(name="on_message_edit")
    async def on_message_edit(self, before: discord.Message, after: discord.Message):
        """Re-check edited messages; embed unfurls arrive as edits with unchanged content."""
        if not discord_utils.should_process_message(self.bot, after):
            return
        if before.content == after.content and len(before.stickers) == len(after.stickers):
            return

        decision = await self.pipeline.handle_message(ContentEvent.from_message(after, is_edit=True))
        logger.debug(f"Edited message {after.id} in {after.channel.id}: {decision}")

    @commands.Cog.listener(name="on_raw_reaction_add")
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent):
        """Raw event so reactions on uncached messages are still seen."""
        if payload.guild_id is None:
            return
        if self.bot.user is not None and payload.user_id == self.bot.user.id:
            return

        decision = await self.pipeline.handle_reaction(ReactionEvent.from_payload(payload))
        logger.debug(f"Reaction {payload.emoji} on {payload.message_id} by {payload.user_id}: {decision}")


def setup(discord_bot_instance, runtime: ModerationRuntime):
    """Register the MessageListenerCog with the bot."""
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance, runtime))
