"""Wiring of the moderation core for one bot process."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from suppressor.datatypes.moderation_datatypes import ModerationSettings
from suppressor.moderation.action_dispatcher import ActionDispatcher, ModerationRestClient
from suppressor.moderation.correlation_table import DEFAULT_MAX_ENTRIES, CorrelationTable
from suppressor.moderation.incident_command import IncidentCommandHandler
from suppressor.moderation.incident_state import IncidentState
from suppressor.moderation.moderation_pipeline import ModerationPipeline
from suppressor.moderation.pattern_matcher import PatternMatcher


@dataclass(slots=True)
class ModerationRuntime:
    """Owns the shared state objects and the components that use them."""

    settings: ModerationSettings
    incident_state: IncidentState
    correlations: CorrelationTable
    dispatcher: ActionDispatcher
    pipeline: ModerationPipeline
    incident_commands: IncidentCommandHandler

    @classmethod
    def build(
        cls,
        settings: ModerationSettings,
        state_file: Path,
        rest: ModerationRestClient,
        *,
        matcher: Optional[PatternMatcher] = None,
        correlation_capacity: int = DEFAULT_MAX_ENTRIES,
    ) -> "ModerationRuntime":
        """Create every component. Raises PatternCompileError for bad patterns."""
        matcher = matcher or PatternMatcher()
        incident_state = IncidentState.load(state_file)
        correlations = CorrelationTable(correlation_capacity)
        dispatcher = ActionDispatcher(rest)
        return cls(
            settings=settings,
            incident_state=incident_state,
            correlations=correlations,
            dispatcher=dispatcher,
            pipeline=ModerationPipeline(settings, matcher, incident_state, correlations, dispatcher),
            incident_commands=IncidentCommandHandler(settings, incident_state),
        )
