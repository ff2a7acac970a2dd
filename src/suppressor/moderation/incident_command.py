"""Logic behind the privileged ``/down`` command."""

from __future__ import annotations

from typing import Optional

from suppressor.datatypes.moderation_datatypes import IncidentReport, ModerationSettings, Principal
from suppressor.moderation.incident_state import IncidentState
from suppressor.moderation.privilege import is_privileged
from suppressor.util.logger import get_logger

logger = get_logger("incident_command")

CURRENT_TEMPLATE = "The server is currently treated as **{status}**."
UPDATE_TEMPLATE = "The server is now treated as **{status}**."
INCIDENT_TEMPLATE = " Incident resolved after **{hours:.1f}** hours."
SAME_TEMPLATE = "The status is already set to **{status}**."
VIP_ONLY_MESSAGE = "This command is VIP only."


def format_status(down: bool) -> str:
    return "offline" if down else "online"


class IncidentCommandHandler:
    """Reports or toggles :class:`IncidentState` on behalf of a command invoker.

    Denials and no-op requests are ephemeral; status reports and real
    transitions are public.
    """

    def __init__(self, settings: ModerationSettings, incident_state: IncidentState) -> None:
        self.settings = settings
        self.incident_state = incident_state

    async def handle(self, actor: Principal, requested: Optional[bool]) -> IncidentReport:
        current = self.incident_state.is_down
        if requested is None:
            return IncidentReport(CURRENT_TEMPLATE.format(status=format_status(current)))

        if not is_privileged(actor, self.settings.privileged_role_id):
            logger.info("[INCIDENT COMMAND] %s tried to set down=%s without the privileged role", actor.user_id, requested)
            return IncidentReport(VIP_ONLY_MESSAGE, ephemeral=True)

        if requested == current:
            return IncidentReport(SAME_TEMPLATE.format(status=format_status(current)), ephemeral=True)

        transition = await self.incident_state.set_down(requested)
        if not transition.changed:
            # Another invocation won the race to the same value
            return IncidentReport(SAME_TEMPLATE.format(status=format_status(requested)), ephemeral=True)

        content = UPDATE_TEMPLATE.format(status=format_status(requested))
        content += self._owner_suffix(actor, requested)
        if transition.elapsed is not None:
            content += INCIDENT_TEMPLATE.format(hours=transition.elapsed.total_seconds() / 3600)

        logger.info("[INCIDENT COMMAND] %s set down=%s", actor.user_id, requested)
        return IncidentReport(content, changed=True)

    def _owner_suffix(self, actor: Principal, down: bool) -> str:
        owner = self.settings.incident_owner
        if owner is None or owner.user_id != actor.user_id:
            return ""
        return owner.down_suffix if down else owner.up_suffix
