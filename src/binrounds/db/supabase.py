"""Supabase client used by the persistent store."""

import logging
from functools import lru_cache
from supabase import create_client, Client
from ..config import settings


def supabase_configured() -> bool:
    return bool(settings.supabase_url and settings.supabase_key)


@lru_cache()
def get_supabase_client() -> Client | None:
    """Cached client for the scheduling database, or None when credentials are missing.

    Creating the client does not open a connection; the first query is what
    actually reaches the database.
    """
    if not supabase_configured():
        logging.info("Supabase credentials not set (BINROUNDS_SUPABASE_URL / BINROUNDS_SUPABASE_KEY)")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logging.error(f"Failed to create Supabase client for {settings.supabase_url}: {e}")
        return None
