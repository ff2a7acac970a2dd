"""
Incident cog: the ``/down`` slash command.

Without an argument the command reports whether the service is treated as
down. Members with the privileged role can pass ``down: True/False`` to open
or close an incident; closing one reports how long it lasted.
"""

import discord
from discord import Option
from discord.ext import commands

from suppressor.bot.runtime import ModerationRuntime
from suppressor.datatypes.moderation_datatypes import Principal
from suppressor.util.discord_utils import update_presence
from suppressor.util.logger import get_logger

logger = get_logger("incident_cog")


class IncidentCog(commands.Cog):
    """Cog exposing the incident toggle."""

    def __init__(self, discord_bot_instance, runtime: ModerationRuntime):
        self.discord_bot_instance = discord_bot_instance
        self.runtime = runtime
        logger.info("Incident cog loaded")

    @commands.slash_command(name="down", description="Show or set whether the server is treated as down.")
    async def down(
        self,
        ctx: discord.ApplicationContext,
        down: Option(bool, "Whether the server is down.", required=False, default=None),  # type: ignore
    ) -> None:
        actor = Principal.from_author(ctx.author)
        report = await self.runtime.incident_commands.handle(actor, down)
        await ctx.respond(report.content, ephemeral=report.ephemeral)

        if report.changed:
            try:
                await update_presence(
                    self.discord_bot_instance,
                    down=self.runtime.incident_state.is_down,
                    service_name=self.runtime.settings.service_name,
                )
            except discord.HTTPException as exc:
                logger.warning("Failed to update presence after /down: %s", exc)


def setup(discord_bot_instance, runtime: ModerationRuntime):
    """Register the IncidentCog with the bot."""
    discord_bot_instance.add_cog(IncidentCog(discord_bot_instance, runtime))
