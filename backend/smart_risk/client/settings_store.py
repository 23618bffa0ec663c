"""Client-side site settings, merged over the built-in defaults."""
import logging
from typing import Any, Dict, Optional

from smart_risk.client.remote import Filter, RemoteDataClient, RemoteDataError
from smart_risk.content_defaults import PUBLIC_CATEGORIES, all_defaults, localized, parse_value

logger = logging.getLogger(__name__)

SETTINGS_FUNCTION = "site-settings"


def _parse_all(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: parse_value(value) for key, value in values.items()}


class ContentSettingsStore:
    """
    Loads settings through the site-settings function, falling back to a
    direct read of the public categories when the function is unavailable.
    Stored values always win over defaults.
    """

    def __init__(self, remote: RemoteDataClient, defaults: Optional[Dict[str, Any]] = None):
        self.remote = remote
        self.settings: Dict[str, Any] = dict(defaults) if defaults is not None else all_defaults()
        self.loading = False
        self.source: Optional[str] = None

    async def load(self) -> Dict[str, Any]:
        self.loading = True
        try:
            stored = await self._fetch()
            if stored:
                self.settings.update(_parse_all(stored))
        finally:
            self.loading = False
        return self.settings

    async def _fetch(self) -> Dict[str, Any]:
        try:
            data = await self.remote.invoke(SETTINGS_FUNCTION, method="GET")
            if isinstance(data, dict) and data:
                self.source = "function"
                return data
        except RemoteDataError as e:
            logger.warning(f"Settings function failed, reading the table directly: {e}")

        try:
            result = await self.remote.select(
                "site_settings", "key, value", [Filter.in_("category", PUBLIC_CATEGORIES)]
            )
        except RemoteDataError as e:
            logger.error(f"Failed to load settings; using defaults: {e}")
            self.source = "defaults"
            return {}

        self.source = "table"
        return {row["key"]: row.get("value") for row in result.data}

    async def update(self, updates: Dict[str, Any]) -> bool:
        """Save settings through the function (admin only); merges locally on success."""
        try:
            response = await self.remote.invoke(SETTINGS_FUNCTION, body=updates)
        except RemoteDataError as e:
            logger.error(f"Failed to save settings: {e}")
            return False

        if not isinstance(response, dict) or not response.get("success"):
            logger.error(f"Settings function rejected the update: {response}")
            return False

        self.settings.update(_parse_all(response.get("settings") or updates))
        return True

    def get(self, key: str, language: Optional[str] = None, default: Any = None) -> Any:
        value = self.settings.get(key, default)
        return localized(value, language) if language else value
