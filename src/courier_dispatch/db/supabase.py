"""Cached Supabase client shared by the Supabase-backed stores."""

from __future__ import annotations

import logging
from functools import lru_cache

from supabase import Client, create_client

from ..config import settings

logger = logging.getLogger(__name__)


@lru_cache()
def _client_for(url: str, key: str) -> Client | None:
    try:
        client = create_client(url, key)
    except Exception as exc:
        logger.error(f"Failed to create Supabase client for {url}: {exc}")
        return None
    logger.info(f"Supabase client created for {url}")
    return client


def get_supabase_client(url: str | None = None, key: str | None = None) -> Client | None:
    """Client for ``url``/``key`` (defaulting to settings), or None when unconfigured.

    Creating the client does not open a connection, so a bad URL only shows
    up on the first query.
    """
    url = url or settings.supabase_url
    key = key or settings.supabase_key
    if not url or not key:
        logger.warning("Supabase credentials not configured (missing DISPATCH_SUPABASE_URL or DISPATCH_SUPABASE_KEY)")
        return None
    return _client_for(url, key)
