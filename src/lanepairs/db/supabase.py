"""Supabase client backing the city directory."""

import logging
from functools import lru_cache

from supabase import Client, create_client

from ..config import settings

logger = logging.getLogger(__name__)


def supabase_configured() -> bool:
    return bool(settings.supabase_url and settings.supabase_key)


@lru_cache()
def get_supabase_client() -> Client | None:
    """Cached client for the ``cities`` table, or None when credentials are absent.

    Creating the client does not touch the network; query failures surface as
    ``DirectoryUnavailable`` from the directory.
    """
    if not supabase_configured():
        logger.warning("Supabase credentials not configured; city directory will use the city file")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        return None
