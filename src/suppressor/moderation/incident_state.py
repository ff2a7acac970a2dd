"""
Persisted up/down incident flag.

The state file holds a single integer: ``0`` (or nothing) while the service is
up, otherwise the Unix timestamp at which it was marked down. Reloading that
value on startup resumes an open incident without losing elapsed time.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import tempfile
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

from suppressor.datatypes.moderation_datatypes import IncidentTransition
from suppressor.util.logger import get_logger

logger = get_logger("incident_state")

Clock = Callable[[], float]


def read_persisted_timestamp(path: Path) -> int:
    """Return the stored timestamp, or 0 if the file is missing or unusable."""
    try:
        raw = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        logger.info("[INCIDENT STATE] No state file at %s; assuming the service is up.", path)
        return 0
    except OSError as exc:
        logger.warning("[INCIDENT STATE] Could not read %s (%s); assuming the service is up.", path, exc)
        return 0

    if not raw:
        return 0
    try:
        value = int(raw)
    except ValueError:
        logger.warning("[INCIDENT STATE] Ignoring malformed state %r in %s.", raw, path)
        return 0
    return max(value, 0)


def write_persisted_timestamp(path: Path, value: int) -> None:
    """Atomically replace the stored scalar.

    The value goes to a temporary file in the same directory, is synced to
    disk and then renamed over ``path``, so readers see either the old or the
    new value in full.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(str(value))
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


class IncidentState:
    """Process-wide incident flag with the time of the last transition into down.

    Only :class:`~suppressor.moderation.incident_command.IncidentCommandHandler`
    mutates it. Transitions are serialized by an ``asyncio.Lock`` and written to
    disk before :meth:`set_down` returns.
    """

    def __init__(self, path: Path, *, down_since: int = 0, clock: Clock = time.time) -> None:
        self._path = path
        self._clock = clock
        self._lock = asyncio.Lock()
        self._since: Optional[datetime] = (
            datetime.fromtimestamp(down_since, tz=timezone.utc) if down_since > 0 else None
        )

    @classmethod
    def load(cls, path: Path, *, clock: Clock = time.time) -> "IncidentState":
        """Seed the state from ``path``; a fresh deployment starts up."""
        state = cls(path, down_since=read_persisted_timestamp(path), clock=clock)
        if state.is_down:
            logger.info("[INCIDENT STATE] Resuming incident open since %s.", state.since.isoformat())  # type: ignore[union-attr]
        return state

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_down(self) -> bool:
        return self._since is not None

    @property
    def since(self) -> Optional[datetime]:
        """Start of the current incident; None while the service is up."""
        return self._since

    def elapsed(self) -> Optional[timedelta]:
        if self._since is None:
            return None
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc) - self._since

    async def set_down(self, value: bool) -> IncidentTransition:
        """Move to ``value`` and persist it.

        Setting the current value changes nothing. Leaving the down state
        reports how long the incident lasted.
        """
        async with self._lock:
            previous = self.is_down
            if previous == value:
                return IncidentTransition(changed=False, previous=previous)

            now = self._clock()
            elapsed: Optional[timedelta] = None
            if value:
                # Whole seconds so the in-memory value equals what a restart reads back
                stamp = int(now)
                self._since = datetime.fromtimestamp(stamp, tz=timezone.utc)
            else:
                elapsed = datetime.fromtimestamp(now, tz=timezone.utc) - self._since  # type: ignore[operator]
                stamp = 0
                self._since = None

            self._persist(stamp)
            logger.info(
                "[INCIDENT STATE] Service marked %s%s.",
                "down" if value else "up",
                f" after {elapsed}" if elapsed is not None else "",
            )
            return IncidentTransition(changed=True, previous=previous, elapsed=elapsed)

    def _persist(self, stamp: int) -> None:
        try:
            write_persisted_timestamp(self._path, stamp)
        except OSError as exc:
            logger.error(
                "[INCIDENT STATE] Failed to persist state %d to %s: %s. The change will not survive a restart.",
                stamp, self._path, exc,
            )
