"""
Fire-and-forget execution of outbound REST calls.

The pipeline never awaits Discord. It hands each side effect to
:class:`ActionDispatcher`, which runs it as an independent task, turns the
result into an :class:`~suppressor.datatypes.moderation_datatypes.ActionOutcome`
and reports it to the registered sinks. Failures are logged, never retried.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Coroutine, List, Optional, Protocol, Set

import discord

from suppressor.datatypes.discord_datatypes import ChannelID, MessageID
from suppressor.datatypes.moderation_datatypes import ActionOutcome, ActionType
from suppressor.util.logger import get_logger

logger = get_logger("action_dispatcher")

OutcomeSink = Callable[[ActionOutcome], None]


class ModerationRestClient(Protocol):
    """Outbound calls the moderation core needs from the REST layer."""

    async def delete_message(self, channel_id: ChannelID, message_id: MessageID) -> None: ...

    async def suppress_embeds(self, channel_id: ChannelID, message_id: MessageID) -> None: ...

    async def create_message(
        self,
        channel_id: ChannelID,
        content: str,
        *,
        reply_to: Optional[MessageID] = None,
    ) -> MessageID: ...


def log_outcome(outcome: ActionOutcome) -> None:
    """Default sink: successes at DEBUG, failures at WARNING."""
    if outcome.success:
        logger.debug("[DISPATCH] %s", outcome.describe())
    else:
        logger.warning("[DISPATCH] %s", outcome.describe())


class ActionDispatcher:
    """Schedules outbound calls without blocking event evaluation."""

    def __init__(self, rest: ModerationRestClient, sinks: Optional[List[OutcomeSink]] = None) -> None:
        self._rest = rest
        self._sinks: List[OutcomeSink] = [log_outcome] if sinks is None else list(sinks)
        self._tasks: Set[asyncio.Task] = set()
        self._accepting = True

    @property
    def accepting(self) -> bool:
        return self._accepting

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, work: Coroutine[Any, Any, Any], *, label: str) -> Optional[asyncio.Task]:
        """Run ``work`` in the background. Returns None once the dispatcher is closed."""
        if not self._accepting:
            work.close()
            logger.info("[DISPATCH] Dropping '%s'; shutting down.", label)
            return None

        task = asyncio.create_task(work, name=f"suppressor:{label}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("[DISPATCH] Task %s cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[DISPATCH] Task %s crashed", task.get_name(), exc_info=exc)

    # --------------------------
    # Individual calls
    # --------------------------
    async def delete_message(self, channel_id: ChannelID, message_id: MessageID) -> ActionOutcome:
        return await self._perform(
            ActionType.DELETE, channel_id, message_id,
            lambda: self._rest.delete_message(channel_id, message_id),
        )

    async def suppress_embeds(self, channel_id: ChannelID, message_id: MessageID) -> ActionOutcome:
        return await self._perform(
            ActionType.SUPPRESS_EMBEDS, channel_id, message_id,
            lambda: self._rest.suppress_embeds(channel_id, message_id),
        )

    async def create_message(
        self,
        channel_id: ChannelID,
        content: str,
        *,
        reply_to: Optional[MessageID] = None,
    ) -> ActionOutcome:
        return await self._perform(
            ActionType.SEND, channel_id, reply_to,
            lambda: self._rest.create_message(channel_id, content, reply_to=reply_to),
        )

    async def _perform(
        self,
        action: ActionType,
        channel_id: ChannelID,
        message_id: Optional[MessageID],
        call: Callable[[], Awaitable[Any]],
    ) -> ActionOutcome:
        try:
            result = await call()
        except discord.HTTPException as exc:
            outcome = ActionOutcome(action, channel_id, message_id, success=False, error=f"HTTP {exc.status}: {exc.text}")
        except Exception as exc:
            logger.exception("[DISPATCH] Unexpected error during %s", action)
            outcome = ActionOutcome(action, channel_id, message_id, success=False, error=repr(exc))
        else:
            created = result if isinstance(result, MessageID) else None
            outcome = ActionOutcome(action, channel_id, message_id, success=True, created_message_id=created)

        self._report(outcome)
        return outcome

    def _report(self, outcome: ActionOutcome) -> None:
        for sink in self._sinks:
            try:
                sink(outcome)
            except Exception:
                logger.exception("[DISPATCH] Outcome sink %r failed", sink)

    # --------------------------
    # Shutdown
    # --------------------------
    def close(self) -> None:
        """Stop accepting new work; in-flight tasks keep running."""
        self._accepting = False

    async def drain(self, timeout: float) -> int:
        """Wait up to ``timeout`` seconds for in-flight tasks.

        Returns the number still pending afterwards. Pending tasks are not
        cancelled.
        """
        if not self._tasks:
            return 0
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("[DISPATCH] %d outbound call(s) still pending after %.1fs; not waiting further.", len(pending), timeout)
        return len(pending)
