"""Selects the storage backend for the running process."""

from __future__ import annotations

import logging
from functools import lru_cache

from ..data.route_catalogue import load_route_catalogue_file
from ..db.supabase import get_supabase_client, supabase_configured
from .database import SupabaseStore
from .memory import MemoryStore
from .store import Store


@lru_cache()
def get_store() -> Store:
    """Supabase when configured, otherwise a process-wide in-memory store."""
    client = get_supabase_client()
    if client is not None:
        return SupabaseStore(client)

    if supabase_configured():
        logging.error("Supabase is configured but the client could not be created; falling back to memory")
    logging.warning("Supabase not configured - using in-memory store; data will not survive a restart")
    return MemoryStore(route_areas=load_route_catalogue_file())
