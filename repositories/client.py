"""
Supabase client initialization.

This module contains *only* the database connection setup. The client is
created lazily on first use so that importing the repositories never requires
credentials; the in-memory backend never touches it.

Environment variables required (supabase backend only):
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

from functools import lru_cache

from supabase import Client, create_client  # type: ignore[import-not-found]

from config.settings import get_settings


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    url, key = get_settings().require_supabase_credentials()
    return create_client(url, key)


__all__ = ["get_supabase_client"]
