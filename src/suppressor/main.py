"""
Suppressor Discord Bot
======================

Moderates a single community: deletes sticker messages and leaked private
user ids, answers outage reports while an incident is open, and lets
privileged members toggle the incident with ``/down``.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. SUPPRESSOR_HOME environment variable, if set.
    2. If running in a frozen/compiled context, the executable's directory.
    3. Otherwise the project root two levels above this package.
    """
    if env_home := os.getenv("SUPPRESSOR_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import signal
import discord
from dotenv import load_dotenv

from suppressor.bot.runtime import ModerationRuntime
from suppressor.configuration.app_configuration import ConfigurationError, app_config
from suppressor.moderation.pattern_matcher import PatternCompileError
from suppressor.ui.console import ConsoleControl, close_bot_instance, console_session
from suppressor.util.discord_utils import DiscordRestClient
from suppressor.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load ``.env`` and return the Discord bot token.

    Raises
    ------
    SystemExit
        If ``DISCORD_BOT_TOKEN`` is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Guild messages with content, reactions and guild metadata; nothing else."""
    intents = discord.Intents.none()
    intents.guilds = True
    intents.guild_messages = True
    intents.guild_reactions = True
    intents.message_content = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot, runtime: ModerationRuntime) -> None:
    """Register all cogs with the bot."""
    from suppressor.bot.cogs import events_listener, incident_cmds, message_listener

    events_listener.setup(discord_bot_instance, runtime)
    message_listener.setup(discord_bot_instance, runtime)
    incident_cmds.setup(discord_bot_instance, runtime)

    logger.info("All cogs loaded successfully.")


def create_bot() -> tuple[discord.Bot, ModerationRuntime]:
    """Instantiate the bot and the moderation runtime bound to its REST client.

    Raises
    ------
    ConfigurationError
        If the moderation settings are invalid.
    PatternCompileError
        If a content pattern does not compile.
    """
    settings = app_config.moderation_settings
    bot = discord.Bot(intents=build_intents())
    runtime = ModerationRuntime.build(
        settings,
        app_config.state_file,
        DiscordRestClient(bot),
        correlation_capacity=app_config.correlation_capacity,
    )
    load_cogs(bot, runtime)
    return bot, runtime


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Connect to Discord and run until the bot is closed."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot, runtime: ModerationRuntime) -> None:
    """Stop taking new actions, give in-flight ones a grace period, then disconnect.

    Outbound calls still running after the grace period are abandoned.
    """
    runtime.dispatcher.close()
    await runtime.dispatcher.drain(app_config.shutdown_grace_seconds)
    await close_bot_instance(bot, log_close=True)
    logger.info("Shutdown complete.")


def install_signal_handlers(control: ConsoleControl) -> None:
    """Turn SIGINT/SIGTERM into a shutdown request."""
    loop = asyncio.get_running_loop()

    def request_stop() -> None:
        logger.info("Termination signal received.")
        control.request_shutdown()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_stop)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal %s handler not supported on this platform", sig)


async def watch_for_shutdown(bot: discord.Bot, control: ConsoleControl) -> None:
    """Wait for a shutdown request from the console or a signal, then stop the runtime."""
    await control.shutdown_event.wait()
    if control.runtime is not None:
        await shutdown_runtime(bot, control.runtime)
    else:
        await close_bot_instance(bot, log_close=True)


async def run_bot_session(bot: discord.Bot, token: str, control: ConsoleControl, *, interactive: bool) -> int:
    """Run the bot (with the console when attached to a terminal), returning an exit code."""
    control.set_bot(bot)
    watcher = asyncio.create_task(watch_for_shutdown(bot, control))
    exit_code = 0

    async def serve() -> None:
        nonlocal exit_code
        try:
            await start_bot(bot, token)
        except discord.LoginFailure as exc:
            logger.critical("Discord rejected the bot token: %s", exc)
            exit_code = 1
        except Exception as exc:
            logger.critical("Discord bot runtime error: %s", exc)
            exit_code = 1

    try:
        if interactive:
            async with console_session(control):
                await serve()
        else:
            await serve()
    finally:
        control.set_bot(None)
        control.request_shutdown()
        await watcher

    return exit_code


async def async_main() -> int:
    """Bootstrap configuration, runtime and bot, returning an exit code."""
    token = load_environment()

    try:
        bot, runtime = create_bot()
    except (ConfigurationError, PatternCompileError) as exc:
        logger.critical("Invalid configuration: %s", exc)
        return 1

    control = ConsoleControl(runtime)
    install_signal_handlers(control)
    return await run_bot_session(bot, token, control, interactive=sys.stdin.isatty())


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process code."""
    logger.info("Starting Suppressor…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        return code if isinstance(code, int) else 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
