"""Supabase client factories.

Usage:
    from libs.common.supabase import get_supabase_client, get_supabase_admin_client

    client = get_supabase_client()          # anon key, user-facing auth calls
    admin = get_supabase_admin_client()     # service role, admin auth API
"""

from functools import lru_cache

from supabase import Client, create_client

from libs.common.config import get_settings


@lru_cache
def get_supabase_client() -> Client:
    """Return a cached client authenticated with the anon key."""
    settings = get_settings()
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)


@lru_cache
def get_supabase_admin_client() -> Client:
    """Return a cached client authenticated with the service role key."""
    settings = get_settings()
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
