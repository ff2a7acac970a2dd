"""Fakes and event builders shared by the test modules."""

from suppressor.datatypes.discord_datatypes import ChannelID, MessageID, RoleID, UserID
from suppressor.datatypes.moderation_datatypes import (
    ActionType,
    ContentEvent,
    Principal,
    ReactionEvent,
)

VIP_ROLE = RoleID(755511470305050715)
MEMBER_ROLE = RoleID(111)
GENERAL = ChannelID(603643299961503761)
OFF_TOPIC = ChannelID(700000000000000001)
AUX_BOT = UserID(800000000000000001)
START = 1_700_000_000.0


class FakeClock:
    """Settable replacement for ``time.time``."""

    def __init__(self, now: float = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRestClient:
    """Records outbound calls; actions listed in ``fail`` raise instead."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.fail: set[ActionType] = set()
        self._next_id = 900_000

    async def delete_message(self, channel_id, message_id):
        self.calls.append(("delete", channel_id, message_id))
        if ActionType.DELETE in self.fail:
            raise RuntimeError("delete failed")

    async def suppress_embeds(self, channel_id, message_id):
        self.calls.append(("suppress", channel_id, message_id))
        if ActionType.SUPPRESS_EMBEDS in self.fail:
            raise RuntimeError("edit failed")

    async def create_message(self, channel_id, content, *, reply_to=None):
        self.calls.append(("send", channel_id, content, reply_to))
        if ActionType.SEND in self.fail:
            raise RuntimeError("send failed")
        self._next_id += 1
        return MessageID(self._next_id)


def make_principal(user_id: int = 42, *, vip: bool = False, bot: bool = False, webhook: bool = False) -> Principal:
    roles = {MEMBER_ROLE, VIP_ROLE} if vip else {MEMBER_ROLE}
    return Principal(UserID(user_id), frozenset(roles), is_bot=bot, is_webhook=webhook)


def make_message(
    content: str = "hello",
    *,
    author: Principal | None = None,
    message_id: int = 1001,
    channel_id: ChannelID = GENERAL,
    stickers: int = 0,
    reply_to: int | None = None,
    is_edit: bool = False,
) -> ContentEvent:
    return ContentEvent(
        message_id=MessageID(message_id),
        channel_id=channel_id,
        author=author or make_principal(),
        content=content,
        sticker_count=stickers,
        reference_id=MessageID(reply_to) if reply_to else None,
        is_edit=is_edit,
    )


def make_reaction(message_id: int, emoji: str = "✅", *, actor: Principal | None = None, channel_id: ChannelID = GENERAL) -> ReactionEvent:
    return ReactionEvent(channel_id=channel_id, message_id=MessageID(message_id), emoji=emoji, actor=actor)

