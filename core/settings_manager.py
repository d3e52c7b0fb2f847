"""
Settings Manager for the alternatives engine.

All configuration comes from environment variables (a .env file is loaded
by the CLI before this module is used).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Project root directory - used for the bundled catalog path
PROJECT_ROOT = Path(__file__).parent.parent.resolve()


class SettingsManager:
    """Manages engine configuration via environment variables."""

    DEFAULTS: dict[str, Any] = {
        "catalog_api_url": "",
        "catalog_api_key": "",
        "catalog_table": "products2",
        "catalog_static_path": str(PROJECT_ROOT / "data" / "businesses.json"),
        "catalog_validation_mode": "strict",
        "match_limit": 3,
        "nav_poll_interval": 1.0,
        "toast_delay": 2.0,
        "toast_countdown": 5.0,
        "fetch_timeout": 15.0,
        "host_cookies": "",
    }

    ENV_MAPPINGS = {
        "catalog_api_url": "CATALOG_API_URL",
        "catalog_api_key": "CATALOG_API_KEY",
        "catalog_table": "CATALOG_TABLE",
        "catalog_static_path": "CATALOG_STATIC_PATH",
        "catalog_validation_mode": "CATALOG_VALIDATION_MODE",
        "match_limit": "MATCH_LIMIT",
        "nav_poll_interval": "NAV_POLL_INTERVAL",
        "toast_delay": "TOAST_DELAY",
        "toast_countdown": "TOAST_COUNTDOWN",
        "fetch_timeout": "FETCH_TIMEOUT",
        "host_cookies": "HOST_COOKIES",
    }

    def __init__(self) -> None:
        self._cache: dict[str, Any] = {}
        self._load_from_env()

    def _load_from_env(self) -> None:
        for setting_key, env_key in self.ENV_MAPPINGS.items():
            env_value = os.getenv(env_key)
            if env_value:
                self.set(setting_key, env_value)

    def get(self, key: str, default: Any = None) -> Any:
        if default is None:
            default = self.DEFAULTS.get(key, "")

        value = self._cache.get(key, default)
        expected = self.DEFAULTS.get(key)

        # Coerce env strings to the type of the default
        if isinstance(value, str) and expected is not None and not isinstance(expected, str):
            try:
                return type(expected)(value)
            except ValueError:
                logger.warning(f"Invalid value for {key}: {value!r}, using default {expected!r}")
                return expected

        return value

    def set(self, key: str, value: Any) -> None:
        self._cache[key] = value

    def get_all(self) -> dict[str, Any]:
        all_settings = {}
        for key in self.DEFAULTS:
            value = self.get(key)
            if key == "catalog_api_key" and value:
                value = "***"
            all_settings[key] = value
        return all_settings

    def reload(self) -> None:
        self._cache.clear()
        self._load_from_env()

    @property
    def cookies(self) -> dict[str, str]:
        """Parse HOST_COOKIES ('a=1; b=2') into a cookie mapping."""
        raw = str(self.get("host_cookies") or "")
        cookies: dict[str, str] = {}
        for part in raw.split(";"):
            name, sep, value = part.strip().partition("=")
            if sep and name:
                cookies[name.strip()] = value.strip()
        return cookies


settings = SettingsManager()
