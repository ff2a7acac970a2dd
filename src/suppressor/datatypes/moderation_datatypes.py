"""
Data structures that flow through the moderation pipeline.

Events are built by the cogs from py-cord objects, evaluated once by
:class:`~suppressor.moderation.moderation_pipeline.ModerationPipeline` and then
dropped. Nothing here is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import FrozenSet, Optional, Union

import discord

from suppressor.datatypes.discord_datatypes import ChannelID, MessageID, RoleID, UserID


class Intent(Enum):
    """What a content pattern recognizes in a message body."""

    LEAKS_PRIVATE_IDENTIFIER = "leaks-private-identifier"
    REPORTS_INCIDENT = "reports-incident"

    def __str__(self) -> str:
        return self.value


class ActionType(Enum):
    """Outbound REST calls the pipeline can issue."""

    DELETE = "delete"
    SUPPRESS_EMBEDS = "suppress_embeds"
    SEND = "send"

    def __str__(self) -> str:
        return self.value


class Decision(Enum):
    """The branch the pipeline took for one event."""

    IGNORED = "ignored"
    PRIVILEGED = "privileged"
    DELETED_PRIVATE_IDENTIFIER = "deleted_private_identifier"
    DELETED_STICKER = "deleted_sticker"
    CORRELATED = "correlated"
    INCIDENT_REPLY = "incident_reply"
    REVERSED = "reversed"
    SUPPRESSED_EMBEDS = "suppressed_embeds"
    NO_ACTION = "no_action"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Principal:
    """The user, bot or webhook responsible for an event.

    Attributes:
        user_id: Stable account id.
        role_ids: Roles held in the guild; empty for non-members.
        is_bot: Account is a bot user.
        is_webhook: Message was delivered by a webhook.
    """

    user_id: UserID
    role_ids: FrozenSet[RoleID] = frozenset()
    is_bot: bool = False
    is_webhook: bool = False

    @property
    def is_human(self) -> bool:
        return not (self.is_bot or self.is_webhook)

    @classmethod
    def from_author(
        cls,
        author: Union[discord.Member, discord.User],
        *,
        webhook_id: Optional[int] = None,
    ) -> "Principal":
        """Build a principal from a message author or reacting member.

        Plain ``discord.User`` objects (no guild membership) carry no roles.
        """
        roles = getattr(author, "roles", None) or []
        return cls(
            user_id=UserID(author.id),
            role_ids=frozenset(RoleID(role.id) for role in roles),
            is_bot=bool(getattr(author, "bot", False)),
            is_webhook=webhook_id is not None,
        )


@dataclass(frozen=True, slots=True)
class ContentEvent:
    """A created or edited message, reduced to what the rules look at."""

    message_id: MessageID
    channel_id: ChannelID
    author: Principal
    content: str = ""
    sticker_count: int = 0
    reference_id: Optional[MessageID] = None
    is_edit: bool = False

    @property
    def has_stickers(self) -> bool:
        return self.sticker_count > 0

    @property
    def is_reply(self) -> bool:
        return self.reference_id is not None

    @classmethod
    def from_message(cls, message: discord.Message, *, is_edit: bool = False) -> "ContentEvent":
        reference = getattr(message, "reference", None)
        reference_id = getattr(reference, "message_id", None)
        return cls(
            message_id=MessageID.from_message(message),
            channel_id=ChannelID.from_channel(message.channel),
            author=Principal.from_author(message.author, webhook_id=message.webhook_id),
            content=message.content or "",
            sticker_count=len(message.stickers or []),
            reference_id=MessageID(reference_id) if reference_id else None,
            is_edit=is_edit,
        )


@dataclass(frozen=True, slots=True)
class ReactionEvent:
    """A reaction added to a message.

    ``actor`` is None when the gateway did not deliver member data (DMs or
    uncached members); such reactions are never privileged.
    """

    channel_id: ChannelID
    message_id: MessageID
    emoji: str
    actor: Optional[Principal] = None

    @classmethod
    def from_payload(cls, payload: discord.RawReactionActionEvent) -> "ReactionEvent":
        member = payload.member
        return cls(
            channel_id=ChannelID(payload.channel_id),
            message_id=MessageID(payload.message_id),
            emoji=payload.emoji.name or "",
            actor=Principal.from_author(member) if member is not None else None,
        )


@dataclass(slots=True)
class ActionOutcome:
    """Result of one fire-and-forget REST call, handed to the outcome sinks.

    Attributes:
        action: The call that was attempted.
        channel_id: Channel the call targeted.
        message_id: Message the call targeted (for SEND, the message replied to, if any).
        success: Whether the REST layer acknowledged the call.
        error: Text of the failure, if any.
        created_message_id: Id of the message created by a SEND.
    """

    action: ActionType
    channel_id: ChannelID
    message_id: Optional[MessageID]
    success: bool
    error: Optional[str] = None
    created_message_id: Optional[MessageID] = None

    def describe(self) -> str:
        target = f"channel={self.channel_id} message={self.message_id}"
        if self.success:
            created = f" created={self.created_message_id}" if self.created_message_id else ""
            return f"{self.action} ok ({target}{created})"
        return f"{self.action} failed ({target}): {self.error}"


@dataclass(frozen=True, slots=True)
class IncidentTransition:
    """What :meth:`IncidentState.set_down` did.

    ``elapsed`` is only set when leaving the down state.
    """

    changed: bool
    previous: bool
    elapsed: Optional[timedelta] = None


@dataclass(frozen=True, slots=True)
class IncidentReport:
    """Response to the ``/down`` command."""

    content: str
    ephemeral: bool = False
    changed: bool = False


@dataclass(frozen=True, slots=True)
class BypassScope:
    """Which content rules privileged authors are exempt from."""

    private_identifier: bool = True
    stickers: bool = True
    incident_reports: bool = True


@dataclass(frozen=True, slots=True)
class IncidentOwner:
    """Optional operator who gets a personal note when toggling ``/down``."""

    user_id: UserID
    down_suffix: str = ""
    up_suffix: str = ""


@dataclass(frozen=True, slots=True)
class ModerationSettings:
    """Validated, immutable moderation configuration."""

    privileged_role_id: RoleID
    monitored_channel_ids: FrozenSet[ChannelID] = frozenset()
    reaction_channel_ids: FrozenSet[ChannelID] = frozenset()
    auxiliary_bot_ids: FrozenSet[UserID] = frozenset()
    service_name: str = "SponsorBlock"
    status_url: str = "https://sponsorblock.works"
    bypass: BypassScope = field(default_factory=BypassScope)
    incident_owner: Optional[IncidentOwner] = None

    def is_monitored(self, channel_id: ChannelID) -> bool:
        return not self.monitored_channel_ids or channel_id in self.monitored_channel_ids

    def accepts_reactions_in(self, channel_id: ChannelID) -> bool:
        return not self.reaction_channel_ids or channel_id in self.reaction_channel_ids
