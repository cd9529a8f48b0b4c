"""
Process-wide configuration loaded once from environment variables.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional, Mapping

logger = logging.getLogger(__name__)

DEFAULT_FLEET_BASE_URL = "http://bgfleet.loginto.me/Tracking/mobile"

_settings: Optional["Settings"] = None


class ConfigurationError(ValueError):
    """Raised when a required configuration value is missing."""
    pass


@dataclass(frozen=True)
class Settings:
    """
    Immutable configuration snapshot.

    Values are optional at construction time; callers validate the ones they
    need with require() before doing any network work.
    """

    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None
    supabase_jwt_secret: Optional[str] = None
    fleet_username: Optional[str] = None
    fleet_password: Optional[str] = None
    fleet_base_url: str = DEFAULT_FLEET_BASE_URL
    google_maps_api_key: Optional[str] = None
    google_places_api_key: Optional[str] = None
    cron_secret: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Settings instance
        """
        env = os.environ if environ is None else environ
        return cls(
            supabase_url=env.get("SUPABASE_URL") or None,
            supabase_service_key=env.get("SUPABASE_SERVICE_KEY") or None,
            supabase_jwt_secret=env.get("SUPABASE_JWT_SECRET") or None,
            fleet_username=env.get("FLEET_USERNAME") or None,
            fleet_password=env.get("FLEET_PASSWORD") or None,
            fleet_base_url=(env.get("FLEET_BASE_URL") or DEFAULT_FLEET_BASE_URL).rstrip("/"),
            google_maps_api_key=env.get("GOOGLE_MAPS_API_KEY") or None,
            google_places_api_key=env.get("GOOGLE_PLACES_API_KEY") or None,
            cron_secret=env.get("CRON_SECRET") or None,
        )

    def require(self, *names: str) -> None:
        """
        Ensure the named settings are present.

        Raises:
            ConfigurationError: Listing every missing setting
        """
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            env_names = ", ".join(name.upper() for name in missing)
            raise ConfigurationError(f"Missing configuration: {env_names}")


def get_settings() -> Settings:
    """Get the cached settings, loading them from the environment on first use."""
    global _settings

    if _settings is None:
        _settings = Settings.from_env()
        logger.info("Settings loaded from environment")

    return _settings

