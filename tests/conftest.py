"""
Pytest configuration and fixtures for Suppressor tests.
"""

import os
import sys
import tempfile
from pathlib import Path

# Keep test runs from writing session logs into the project tree
os.environ.setdefault("SUPPRESSOR_LOG_DIR", tempfile.mkdtemp(prefix="suppressor-logs-"))

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import pytest

from suppressor.bot.runtime import ModerationRuntime
from suppressor.datatypes.moderation_datatypes import ModerationSettings
from suppressor.moderation.action_dispatcher import ActionDispatcher
from suppressor.moderation.correlation_table import CorrelationTable
from suppressor.moderation.incident_command import IncidentCommandHandler
from suppressor.moderation.incident_state import IncidentState
from suppressor.moderation.moderation_pipeline import ModerationPipeline
from suppressor.moderation.pattern_matcher import PatternMatcher

from helpers import AUX_BOT, GENERAL, VIP_ROLE, FakeClock, FakeRestClient


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> ModerationSettings:
    return ModerationSettings(
        privileged_role_id=VIP_ROLE,
        monitored_channel_ids=frozenset({GENERAL}),
        auxiliary_bot_ids=frozenset({AUX_BOT}),
    )


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "incident_state.txt"


@pytest.fixture
def incident_state(state_path: Path, clock: FakeClock) -> IncidentState:
    return IncidentState.load(state_path, clock=clock)


@pytest.fixture
def rest() -> FakeRestClient:
    return FakeRestClient()


@pytest.fixture
def outcomes() -> list:
    return []


@pytest.fixture
def dispatcher(rest: FakeRestClient, outcomes: list) -> ActionDispatcher:
    return ActionDispatcher(rest, sinks=[outcomes.append])


@pytest.fixture
def correlations() -> CorrelationTable:
    return CorrelationTable()


@pytest.fixture
def pipeline(settings, incident_state, correlations, dispatcher) -> ModerationPipeline:
    return ModerationPipeline(settings, PatternMatcher(), incident_state, correlations, dispatcher)


@pytest.fixture
def runtime(settings, incident_state, correlations, dispatcher, pipeline) -> ModerationRuntime:
    return ModerationRuntime(
        settings=settings,
        incident_state=incident_state,
        correlations=correlations,
        dispatcher=dispatcher,
        pipeline=pipeline,
        incident_commands=IncidentCommandHandler(settings, incident_state),
    )
