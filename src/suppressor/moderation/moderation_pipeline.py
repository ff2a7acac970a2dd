"""
Per-event moderation decisions.

Every inbound message or reaction is evaluated once against a fixed
precedence of rules and produces at most one corrective action:

Messages
    1. webhooks and unknown bots are ignored; replies from auxiliary bots are
       correlated with the message they answer
    2. privileged authors bypass the content rules
    3. a leaked private user id gets an explanation, then the message is deleted
    4. messages carrying stickers are deleted
    5. during an incident, outage reports in monitored channels get one
       informational reply

Reactions
    A privileged ✅ or ❌ undoes the companion message recorded for the
    reacted message, or suppresses its embeds when there is none.

The returned :class:`Decision` names the branch taken. Side effects run
through :class:`ActionDispatcher` and are never awaited here.
"""

from __future__ import annotations

from suppressor.datatypes.moderation_datatypes import (
    ContentEvent,
    Decision,
    Intent,
    ModerationSettings,
    ReactionEvent,
)
from suppressor.moderation.action_dispatcher import ActionDispatcher
from suppressor.moderation.correlation_table import CorrelationTable
from suppressor.moderation.incident_state import IncidentState
from suppressor.moderation.pattern_matcher import PatternMatcher
from suppressor.moderation.privilege import is_privileged
from suppressor.util.logger import get_logger

logger = get_logger("moderation_pipeline")

AFFIRMATIVE_EMOJI = "✅"
NEGATIVE_EMOJI = "❌"
REVERSAL_EMOJI = frozenset({AFFIRMATIVE_EMOJI, NEGATIVE_EMOJI})

PRIVATE_ID_NOTICE = (
    "{mention} your message was removed because it contained what looks like your private "
    "{service} user ID. Keep it secret: anyone who has it can submit and vote as you."
)
INCIDENT_NOTICE = "{service} has been down since <t:{since}:f>. Stay updated at <{status_url}>."


class ModerationPipeline:
    """Applies the moderation rules to content and reaction events."""

    def __init__(
        self,
        settings: ModerationSettings,
        matcher: PatternMatcher,
        incident_state: IncidentState,
        correlations: CorrelationTable,
        dispatcher: ActionDispatcher,
    ) -> None:
        self.settings = settings
        self.matcher = matcher
        self.incident_state = incident_state
        self.correlations = correlations
        self.dispatcher = dispatcher

    # --------------------------
    # Content path
    # --------------------------
    async def handle_message(self, event: ContentEvent) -> Decision:
        """Evaluate a created or edited message. Edits only see the delete rules."""
        author = event.author
        if author.is_webhook:
            return Decision.IGNORED
        if author.is_bot:
            return await self._handle_bot_message(event)

        privileged = is_privileged(author, self.settings.privileged_role_id)
        bypass = self.settings.bypass
        if privileged and bypass.private_identifier and bypass.stickers and bypass.incident_reports:
            return Decision.PRIVILEGED

        if not (privileged and bypass.private_identifier) and self.matcher.matches(
            event.content, Intent.LEAKS_PRIVATE_IDENTIFIER
        ):
            logger.info("[PIPELINE] Private user id in message %s by %s; removing it", event.message_id, author.user_id)
            self.dispatcher.submit(self._explain_and_delete(event), label=f"private-id:{event.message_id}")
            return Decision.DELETED_PRIVATE_IDENTIFIER

        if event.has_stickers and not (privileged and bypass.stickers):
            logger.info("[PIPELINE] Sticker in message %s by %s; deleting it", event.message_id, author.user_id)
            self.dispatcher.submit(
                self.dispatcher.delete_message(event.channel_id, event.message_id),
                label=f"sticker:{event.message_id}",
            )
            return Decision.DELETED_STICKER

        if event.is_edit:
            return Decision.NO_ACTION

        if (
            self.incident_state.is_down
            and self.settings.is_monitored(event.channel_id)
            and not (privileged and bypass.incident_reports)
            and self.matcher.matches(event.content, Intent.REPORTS_INCIDENT)
        ):
            logger.info("[PIPELINE] Outage report %s in channel %s; replying", event.message_id, event.channel_id)
            self.dispatcher.submit(self._reply_to_report(event), label=f"incident:{event.message_id}")
            return Decision.INCIDENT_REPLY

        return Decision.PRIVILEGED if privileged else Decision.NO_ACTION

    async def _handle_bot_message(self, event: ContentEvent) -> Decision:
        if (
            event.author.user_id in self.settings.auxiliary_bot_ids
            and event.is_reply
            and not event.is_edit
        ):
            await self.correlations.record(event.reference_id, event.message_id)
            return Decision.CORRELATED
        return Decision.IGNORED

    async def _explain_and_delete(self, event: ContentEvent) -> None:
        # Explanation first; the delete still runs if the send failed
        notice = PRIVATE_ID_NOTICE.format(mention=f"<@{event.author.user_id}>", service=self.settings.service_name)
        await self.dispatcher.create_message(event.channel_id, notice)
        await self.dispatcher.delete_message(event.channel_id, event.message_id)

    async def _reply_to_report(self, event: ContentEvent) -> None:
        since = self.incident_state.since
        if since is None:
            # The incident was closed between the decision and this task running
            logger.debug("[PIPELINE] Incident closed before replying to %s", event.message_id)
            return
        notice = INCIDENT_NOTICE.format(
            service=self.settings.service_name,
            since=int(since.timestamp()),
            status_url=self.settings.status_url,
        )
        outcome = await self.dispatcher.create_message(event.channel_id, notice, reply_to=event.message_id)
        if outcome.success and outcome.created_message_id is not None:
            await self.correlations.record(event.message_id, outcome.created_message_id)

    # --------------------------
    # Reaction path
    # --------------------------
    async def handle_reaction(self, event: ReactionEvent) -> Decision:
        """Evaluate a reaction; only privileged ✅/❌ reactions do anything."""
        if event.emoji not in REVERSAL_EMOJI:
            return Decision.IGNORED
        if not self.settings.accepts_reactions_in(event.channel_id):
            return Decision.IGNORED
        if not is_privileged(event.actor, self.settings.privileged_role_id):
            return Decision.IGNORED

        companion_id = await self.correlations.take_companion(event.message_id)
        if companion_id is not None:
            logger.info("[PIPELINE] Reverting companion %s of message %s", companion_id, event.message_id)
            self.dispatcher.submit(
                self.dispatcher.delete_message(event.channel_id, companion_id),
                label=f"revert:{companion_id}",
            )
            return Decision.REVERSED

        self.dispatcher.submit(
            self.dispatcher.suppress_embeds(event.channel_id, event.message_id),
            label=f"suppress:{event.message_id}",
        )
        return Decision.SUPPRESSED_EMBEDS
