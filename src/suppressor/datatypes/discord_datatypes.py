"""
Type-safe wrapper classes for Discord identifiers.

Discord snowflakes are 64-bit integers. Wrapping them keeps a channel id from
being passed where a message id is expected, which matters in the pipeline
where both travel side by side through every outbound call.
"""

from __future__ import annotations

from typing import Union

import discord


class Snowflake:
    """
    Common behaviour for the typed snowflake wrappers.

    Values are stored as strings for JSON parity and compare equal to another
    wrapper of the same type, to the raw ``int`` and to its decimal string.

    Example:
        >>> mid = MessageID(123456789012345678)
        >>> mid.to_int()
        123456789012345678
        >>> str(mid)
        '123456789012345678'
        >>> MessageID("123456789012345678") == mid
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        """
        Initialize from a string, int, or another wrapper of the same type.

        Raises:
            ValueError: If the value cannot be converted to a valid snowflake.
        """
        if isinstance(value, type(self)):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool: {value}")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            self._value = str(int(value.strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls."""
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if type(other) is type(self):
            return self._value == other._value  # type: ignore[attr-defined]
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class UserID(Snowflake):
    """Snowflake of a user, member or bot account."""

    __slots__ = ()


class RoleID(Snowflake):
    """Snowflake of a guild role."""

    __slots__ = ()


class ChannelID(Snowflake):
    """Snowflake of a text channel or thread."""

    __slots__ = ()

    @classmethod
    def from_channel(cls, channel: Union[discord.TextChannel, discord.Thread]) -> "ChannelID":
        return cls(channel.id)


class MessageID(Snowflake):
    """Snowflake of a message."""

    __slots__ = ()

    @classmethod
    def from_message(cls, message: discord.Message) -> "MessageID":
        return cls(message.id)
