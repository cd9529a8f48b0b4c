"""
Supabase client singleton for database operations.
"""

import logging
from typing import Optional
from supabase import create_client, Client
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

# Singleton instance
_supabase_client: Optional[Client] = None


def get_supabase_client(settings: Optional[Settings] = None) -> Client:
    """
    Get the Supabase client singleton.
    Uses the service role key, so row level security is bypassed and
    every handler must check permissions itself.

    Args:
        settings: Settings to read credentials from (defaults to get_settings())

    Returns:
        Supabase Client instance

    Raises:
        ConfigurationError: If SUPABASE_URL or SUPABASE_SERVICE_KEY is missing
    """
    global _supabase_client

    if _supabase_client is None:
        settings = settings or get_settings()
        settings.require("supabase_url", "supabase_service_key")
        _supabase_client = create_client(settings.supabase_url, settings.supabase_service_key)
        logger.info("Supabase client initialized")

    return _supabase_client


def set_supabase_client(client: Optional[Client]) -> None:
    """Replace the singleton (used by tests and by the sync job warm start)."""
    global _supabase_client
    _supabase_client = client

