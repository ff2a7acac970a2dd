"""Privilege checks for moderation bypass and the incident toggle."""

from __future__ import annotations

from typing import Optional

from suppressor.datatypes.discord_datatypes import RoleID
from suppressor.datatypes.moderation_datatypes import Principal


def is_privileged(principal: Optional[Principal], privileged_role_id: RoleID) -> bool:
    """Return True when a human principal holds the privileged role.

    Bots and webhooks are never privileged, whatever roles they carry.
    """
    if principal is None or not principal.is_human:
        return False
    return privileged_role_id in principal.role_ids
