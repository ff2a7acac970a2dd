import pytest

from suppressor.datatypes.discord_datatypes import (
    ChannelID,
    MessageID,
    RoleID,
    UserID,
)


class DummyObj:
    def __init__(self, id_val=None):
        self.id = id_val


def test_userid_from_int_and_str_and_equality_and_hash():
    u1 = UserID(12345)
    assert u1.to_int() == 12345
    assert str(u1) == "12345"

    u2 = UserID(" 12345 ")
    assert u1 == u2
    assert hash(u1) == hash(u2)

    u3 = UserID(111)

    # equality with raw types
    assert u3 == 111
    assert u3 == "111"
    assert u3 != 112


def test_wrappers_of_different_kinds_are_never_equal():
    assert ChannelID(1) != MessageID(1)
    assert RoleID(1) != UserID(1)
    assert len({ChannelID(1), ChannelID("1"), ChannelID(2)}) == 2


def test_copy_constructor_keeps_value():
    original = MessageID(42)
    assert MessageID(original) == original
    assert repr(original) == "MessageID('42')"


@pytest.mark.parametrize("bad", ["abc", "", 1.5, None, True])
def test_invalid_values_are_rejected(bad):
    with pytest.raises(ValueError):
        ChannelID(bad)  # type: ignore[arg-type]


def test_from_helpers_read_the_id_attribute():
    assert ChannelID.from_channel(DummyObj(6)) == ChannelID(6)  # type: ignore[arg-type]
    assert MessageID.from_message(DummyObj(7)) == MessageID(7)  # type: ignore[arg-type]
