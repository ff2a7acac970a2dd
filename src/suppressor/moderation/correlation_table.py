"""Links between a triggering message and the companion message posted for it."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import Optional

from suppressor.datatypes.discord_datatypes import MessageID
from suppressor.util.logger import get_logger

logger = get_logger("correlation_table")

DEFAULT_MAX_ENTRIES = 1000


class CorrelationTable:
    """In-memory trigger -> companion mapping used to undo companion messages.

    Entries are single-use and do not survive a restart. At most
    ``max_entries`` links are kept; recording past the cap drops the oldest,
    whose companion can then no longer be undone by a reaction.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._entries: "OrderedDict[MessageID, MessageID]" = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, trigger_id: MessageID) -> Optional[MessageID]:
        return self._entries.get(trigger_id)

    async def record(self, trigger_id: MessageID, companion_id: MessageID) -> None:
        async with self._lock:
            replaced = self._entries.pop(trigger_id, None)
            self._entries[trigger_id] = companion_id
            evicted = []
            while len(self._entries) > self.max_entries:
                evicted.append(self._entries.popitem(last=False))
        if replaced is not None and replaced != companion_id:
            logger.debug("[CORRELATION] Companion %s of %s replaced by %s", replaced, trigger_id, companion_id)
        else:
            logger.debug("[CORRELATION] Recorded companion %s for %s", companion_id, trigger_id)
        for old_trigger, old_companion in evicted:
            logger.debug("[CORRELATION] Table full; forgot companion %s of %s", old_companion, old_trigger)

    async def take_companion(self, trigger_id: MessageID) -> Optional[MessageID]:
        """Remove and return the companion of ``trigger_id``, if one is live."""
        async with self._lock:
            return self._entries.pop(trigger_id, None)
