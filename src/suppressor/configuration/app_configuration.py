from __future__ import annotations
from pathlib import Path
import fcntl
import os
from typing import Any, Dict, FrozenSet, Iterable, Type, TypeVar
import yaml

from suppressor.datatypes.discord_datatypes import ChannelID, RoleID, Snowflake, UserID
from suppressor.datatypes.moderation_datatypes import BypassScope, IncidentOwner, ModerationSettings
from suppressor.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path(os.getenv("SUPPRESSOR_CONFIG", "./config/app_config.yml")).resolve()
DEFAULT_STATE_FILE = "data/incident_state.txt"
DEFAULT_SHUTDOWN_GRACE_SECONDS = 5.0
DEFAULT_CORRELATION_CAPACITY = 1000

S = TypeVar("S", bound=Snowflake)


class ConfigurationError(Exception):
    """Raised when the configuration cannot produce a runnable bot."""


def _snowflake_set(values: Any, kind: Type[S], key: str) -> FrozenSet[S]:
    if values is None:
        return frozenset()
    if not isinstance(values, Iterable) or isinstance(values, (str, bytes, dict)):
        raise ConfigurationError(f"'{key}' must be a list of ids, got {values!r}")
    try:
        return frozenset(kind(value) for value in values)
    except ValueError as exc:
        raise ConfigurationError(f"'{key}' contains an invalid id: {exc}") from exc


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` (or the file
    named by ``SUPPRESSOR_CONFIG``), exposes dictionary-like access helpers and
    validates the moderation values through :attr:`moderation_settings`.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            if data is not None:
                logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it.", self.config_path)
            return {}
        return data

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file and replace the in-memory cache.

        Returns the loaded mapping, which is empty when the file is missing or invalid.
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the cached mapping. Callers should not mutate it."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def state_file(self) -> Path:
        """Location of the persisted incident timestamp.

        Relative paths resolve against the working directory, which ``main``
        pins to the project root.
        """
        return Path(str(self._data.get("state_file") or DEFAULT_STATE_FILE))

    @property
    def shutdown_grace_seconds(self) -> float:
        """Time in-flight outbound calls get to finish during shutdown."""
        try:
            return max(0.0, float(self._data.get("shutdown_grace_seconds", DEFAULT_SHUTDOWN_GRACE_SECONDS)))
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid shutdown_grace_seconds; using %.1f", DEFAULT_SHUTDOWN_GRACE_SECONDS)
            return DEFAULT_SHUTDOWN_GRACE_SECONDS

    @property
    def correlation_capacity(self) -> int:
        """How many undoable companion messages are remembered at once."""
        try:
            value = int(self._data.get("correlation_capacity", DEFAULT_CORRELATION_CAPACITY))
        except (TypeError, ValueError):
            value = 0
        if value < 1:
            logger.warning("[APP CONFIGURATION] Invalid correlation_capacity; using %d", DEFAULT_CORRELATION_CAPACITY)
            return DEFAULT_CORRELATION_CAPACITY
        return value

    @property
    def moderation_settings(self) -> ModerationSettings:
        """Validate the moderation section and freeze it into :class:`ModerationSettings`.

        Raises
        ------
        ConfigurationError
            If ``privileged_role_id`` is missing or any id list is malformed.
        """
        raw_role = self._data.get("privileged_role_id")
        if raw_role is None:
            raise ConfigurationError("'privileged_role_id' is required")
        try:
            privileged_role_id = RoleID(raw_role)
        except ValueError as exc:
            raise ConfigurationError(f"'privileged_role_id' is invalid: {exc}") from exc

        bypass = self._data.get("privilege_bypass") or {}
        if not isinstance(bypass, dict):
            raise ConfigurationError("'privilege_bypass' must be a mapping")

        return ModerationSettings(
            privileged_role_id=privileged_role_id,
            monitored_channel_ids=_snowflake_set(self._data.get("monitored_channel_ids"), ChannelID, "monitored_channel_ids"),
            reaction_channel_ids=_snowflake_set(self._data.get("reaction_channel_ids"), ChannelID, "reaction_channel_ids"),
            auxiliary_bot_ids=_snowflake_set(self._data.get("auxiliary_bot_ids"), UserID, "auxiliary_bot_ids"),
            service_name=str(self._data.get("service_name") or "SponsorBlock"),
            status_url=str(self._data.get("status_url") or "https://sponsorblock.works"),
            bypass=BypassScope(
                private_identifier=bool(bypass.get("private_identifier", True)),
                stickers=bool(bypass.get("stickers", True)),
                incident_reports=bool(bypass.get("incident_reports", True)),
            ),
            incident_owner=self._incident_owner(),
        )

    def _incident_owner(self) -> IncidentOwner | None:
        owner = self._data.get("incident_owner")
        if not owner:
            return None
        if not isinstance(owner, dict) or owner.get("user_id") is None:
            raise ConfigurationError("'incident_owner' needs a 'user_id'")
        try:
            user_id = UserID(owner["user_id"])
        except ValueError as exc:
            raise ConfigurationError(f"'incident_owner.user_id' is invalid: {exc}") from exc
        return IncidentOwner(
            user_id=user_id,
            down_suffix=str(owner.get("down_suffix") or ""),
            up_suffix=str(owner.get("up_suffix") or ""),
        )


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
