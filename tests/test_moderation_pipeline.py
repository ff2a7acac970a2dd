"""
Tests for the per-event moderation rules.

Outbound calls run as background tasks, so every test drains the dispatcher
before looking at what reached the REST client.
"""

import dataclasses

import pytest

from suppressor.datatypes.discord_datatypes import MessageID
from suppressor.datatypes.moderation_datatypes import ActionType, BypassScope, Decision
from suppressor.moderation.correlation_table import CorrelationTable
from suppressor.moderation.moderation_pipeline import ModerationPipeline
from suppressor.moderation.pattern_matcher import PatternMatcher

from helpers import AUX_BOT, GENERAL, OFF_TOPIC, START, make_message, make_principal, make_reaction

PRIVATE_ID = "abcdefghijklmnopqrstuvwxyz0123456789"
VIP = make_principal(7, vip=True)
MEMBER = make_principal(42)


async def settle(pipeline: ModerationPipeline) -> None:
    assert await pipeline.dispatcher.drain(1) == 0


# --------------------------
# Content path
# --------------------------
@pytest.mark.asyncio
async def test_plain_message_needs_no_action(pipeline, rest):
    decision = await pipeline.handle_message(make_message("hello there"))
    await settle(pipeline)

    assert decision is Decision.NO_ACTION
    assert rest.calls == []


@pytest.mark.asyncio
async def test_private_identifier_is_explained_then_deleted(pipeline, rest):
    decision = await pipeline.handle_message(make_message(f"my id: {PRIVATE_ID}", author=MEMBER))
    await settle(pipeline)

    assert decision is Decision.DELETED_PRIVATE_IDENTIFIER
    assert [call[0] for call in rest.calls] == ["send", "delete"]
    _, channel, content, reply_to = rest.calls[0]
    assert channel == GENERAL
    assert content.startswith("<@42> ")
    assert "SponsorBlock" in content
    assert reply_to is None
    assert rest.calls[1] == ("delete", GENERAL, MessageID(1001))


@pytest.mark.asyncio
async def test_private_identifier_is_deleted_even_if_explanation_fails(pipeline, rest, outcomes):
    rest.fail.add(ActionType.SEND)

    await pipeline.handle_message(make_message(PRIVATE_ID))
    await settle(pipeline)

    assert rest.calls[-1] == ("delete", GENERAL, MessageID(1001))
    assert [outcome.success for outcome in outcomes] == [False, True]


@pytest.mark.asyncio
async def test_private_identifier_takes_precedence_over_stickers(pipeline, rest):
    decision = await pipeline.handle_message(make_message(PRIVATE_ID, stickers=1))
    await settle(pipeline)

    assert decision is Decision.DELETED_PRIVATE_IDENTIFIER
    assert len([call for call in rest.calls if call[0] == "delete"]) == 1


@pytest.mark.asyncio
async def test_sticker_message_is_deleted(pipeline, rest):
    decision = await pipeline.handle_message(make_message("look", stickers=2))
    await settle(pipeline)

    assert decision is Decision.DELETED_STICKER
    assert rest.calls == [("delete", GENERAL, MessageID(1001))]


@pytest.mark.asyncio
async def test_privileged_author_bypasses_every_rule(pipeline, rest, incident_state):
    await incident_state.set_down(True)

    for content, stickers in [(PRIVATE_ID, 0), ("sticker", 1), ("is the server down?", 0)]:
        decision = await pipeline.handle_message(make_message(content, author=VIP, stickers=stickers))
        assert decision is Decision.PRIVILEGED

    await settle(pipeline)
    assert rest.calls == []


@pytest.mark.asyncio
async def test_partial_bypass_still_applies_the_other_rules(settings, incident_state, correlations, dispatcher, rest):
    narrowed = dataclasses.replace(settings, bypass=BypassScope(private_identifier=False, stickers=True, incident_reports=True))
    pipeline = ModerationPipeline(narrowed, PatternMatcher(), incident_state, correlations, dispatcher)

    leaked = await pipeline.handle_message(make_message(PRIVATE_ID, author=VIP))
    sticker = await pipeline.handle_message(make_message("sticker", author=VIP, stickers=1, message_id=1002))
    await settle(pipeline)

    assert leaked is Decision.DELETED_PRIVATE_IDENTIFIER
    assert sticker is Decision.PRIVILEGED
    assert rest.calls[-1] == ("delete", GENERAL, MessageID(1001))


@pytest.mark.asyncio
async def test_webhook_and_unknown_bot_messages_are_ignored(pipeline, rest):
    webhook = await pipeline.handle_message(make_message(PRIVATE_ID, author=make_principal(5, webhook=True)))
    stray_bot = await pipeline.handle_message(make_message("sticker", author=make_principal(6, bot=True), stickers=1))
    await settle(pipeline)

    assert webhook is Decision.IGNORED
    assert stray_bot is Decision.IGNORED
    assert rest.calls == []


# --------------------------
# Edits
# --------------------------
@pytest.mark.asyncio
async def test_edit_introducing_a_private_identifier_is_deleted(pipeline, rest):
    decision = await pipeline.handle_message(make_message(f"oops {PRIVATE_ID}", is_edit=True))
    await settle(pipeline)

    assert decision is Decision.DELETED_PRIVATE_IDENTIFIER
    assert rest.calls[-1] == ("delete", GENERAL, MessageID(1001))


@pytest.mark.asyncio
async def test_edit_never_triggers_an_incident_reply(pipeline, rest, incident_state):
    await incident_state.set_down(True)

    decision = await pipeline.handle_message(make_message("is the server down?", is_edit=True))
    await settle(pipeline)

    assert decision is Decision.NO_ACTION
    assert rest.calls == []


# --------------------------
# Incident replies
# --------------------------
@pytest.mark.asyncio
async def test_outage_report_is_ignored_while_up(pipeline, rest):
    decision = await pipeline.handle_message(make_message("is the server down?"))
    await settle(pipeline)

    assert decision is Decision.NO_ACTION
    assert rest.calls == []


@pytest.mark.asyncio
async def test_outage_report_gets_a_reply_while_down(pipeline, rest, incident_state, correlations):
    await incident_state.set_down(True)

    decision = await pipeline.handle_message(make_message("is the server down?"))
    await settle(pipeline)

    assert decision is Decision.INCIDENT_REPLY
    assert len(rest.calls) == 1
    kind, channel, content, reply_to = rest.calls[0]
    assert (kind, channel, reply_to) == ("send", GENERAL, MessageID(1001))
    assert f"<t:{int(START)}:f>" in content
    assert "<https://sponsorblock.works>" in content
    assert correlations.peek(MessageID(1001)) is not None


@pytest.mark.asyncio
async def test_every_outage_report_gets_its_own_reply(pipeline, rest, incident_state):
    await incident_state.set_down(True)

    for message_id in (1001, 1002, 1003):
        await pipeline.handle_message(make_message("I got a 502 error", message_id=message_id))
    await settle(pipeline)

    assert [call[3] for call in rest.calls] == [MessageID(1001), MessageID(1002), MessageID(1003)]


@pytest.mark.asyncio
async def test_outage_report_in_unmonitored_channel_is_ignored(pipeline, rest, incident_state):
    await incident_state.set_down(True)

    decision = await pipeline.handle_message(make_message("is the server down?", channel_id=OFF_TOPIC))
    await settle(pipeline)

    assert decision is Decision.NO_ACTION
    assert rest.calls == []


@pytest.mark.asyncio
async def test_no_reply_if_incident_closes_before_the_task_runs(pipeline, rest, incident_state):
    await incident_state.set_down(True)

    decision = await pipeline.handle_message(make_message("is the server down?"))
    await incident_state.set_down(False)
    await settle(pipeline)

    assert decision is Decision.INCIDENT_REPLY
    assert rest.calls == []


# --------------------------
# Correlation and reactions
# --------------------------
@pytest.mark.asyncio
async def test_auxiliary_bot_reply_is_correlated(pipeline, correlations):
    reply = make_message("Here is the answer", author=make_principal(AUX_BOT.to_int(), bot=True), message_id=2001, reply_to=1001)

    decision = await pipeline.handle_message(reply)

    assert decision is Decision.CORRELATED
    assert correlations.peek(MessageID(1001)) == MessageID(2001)


@pytest.mark.asyncio
async def test_auxiliary_bot_message_without_reference_is_ignored(pipeline, correlations):
    decision = await pipeline.handle_message(make_message("announcement", author=make_principal(AUX_BOT.to_int(), bot=True)))

    assert decision is Decision.IGNORED
    assert len(correlations) == 0


@pytest.mark.asyncio
async def test_privileged_reaction_reverts_companion_then_falls_back_to_suppress(pipeline, rest, correlations):
    await correlations.record(MessageID(1001), MessageID(2001))

    first = await pipeline.handle_reaction(make_reaction(1001, actor=VIP))
    second = await pipeline.handle_reaction(make_reaction(1001, "❌", actor=VIP))
    await settle(pipeline)

    assert first is Decision.REVERSED
    assert second is Decision.SUPPRESSED_EMBEDS
    assert rest.calls == [
        ("delete", GENERAL, MessageID(2001)),
        ("suppress", GENERAL, MessageID(1001)),
    ]


@pytest.mark.asyncio
async def test_incident_reply_can_be_reverted(pipeline, rest, incident_state):
    await incident_state.set_down(True)
    await pipeline.handle_message(make_message("is the server down?"))
    await settle(pipeline)
    reply_id = pipeline.correlations.peek(MessageID(1001))

    decision = await pipeline.handle_reaction(make_reaction(1001, actor=VIP))
    await settle(pipeline)

    assert decision is Decision.REVERSED
    assert rest.calls[-1] == ("delete", GENERAL, reply_id)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reaction",
    [
        make_reaction(1001, actor=MEMBER),
        make_reaction(1001, actor=None),
        make_reaction(1001, "👍", actor=VIP),
        make_reaction(1001, actor=make_principal(8, vip=True, bot=True)),
    ],
    ids=["member", "unknown-actor", "other-emoji", "privileged-bot"],
)
async def test_reactions_that_do_nothing(pipeline, rest, correlations, reaction):
    await correlations.record(MessageID(1001), MessageID(2001))

    decision = await pipeline.handle_reaction(reaction)
    await settle(pipeline)

    assert decision is Decision.IGNORED
    assert rest.calls == []
    assert correlations.peek(MessageID(1001)) == MessageID(2001)


@pytest.mark.asyncio
async def test_reactions_outside_the_allowlist_are_ignored(settings, incident_state, correlations, dispatcher, rest):
    restricted = dataclasses.replace(settings, reaction_channel_ids=frozenset({GENERAL}))
    pipeline = ModerationPipeline(restricted, PatternMatcher(), incident_state, correlations, dispatcher)

    outside = await pipeline.handle_reaction(make_reaction(1001, actor=VIP, channel_id=OFF_TOPIC))
    inside = await pipeline.handle_reaction(make_reaction(1001, actor=VIP))
    await settle(pipeline)

    assert outside is Decision.IGNORED
    assert inside is Decision.SUPPRESSED_EMBEDS
    assert rest.calls == [("suppress", GENERAL, MessageID(1001))]


@pytest.mark.asyncio
async def test_failed_suppress_is_reported(pipeline, rest, outcomes):
    rest.fail.add(ActionType.SUPPRESS_EMBEDS)

    decision = await pipeline.handle_reaction(make_reaction(1001, actor=VIP))
    await settle(pipeline)

    assert decision is Decision.SUPPRESSED_EMBEDS
    assert outcomes[0].success is False
    assert outcomes[0].message_id == MessageID(1001)


@pytest.mark.asyncio
async def test_correlations_stay_bounded_under_sustained_traffic(settings, incident_state, dispatcher):
    correlations = CorrelationTable(max_entries=50)
    pipeline = ModerationPipeline(settings, PatternMatcher(), incident_state, correlations, dispatcher)
    helper_bot = make_principal(AUX_BOT.to_int(), bot=True)

    for n in range(200):
        await pipeline.handle_message(make_message("answer", author=helper_bot, message_id=20_000 + n, reply_to=30_000 + n))

    assert len(correlations) == 50
    assert correlations.peek(MessageID(30_000)) is None
    assert correlations.peek(MessageID(30_199)) is not None
