"""Supabase client for the bin and route document tables."""

import logging
from functools import lru_cache
from supabase import create_client, Client
from ..config import settings


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logging.warning("Supabase credentials not configured (missing URL or key)")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logging.error(f"Failed to create Supabase client: {e}")
        return None


# Table layout expected by SupabaseCollectionGateway:
#
# create table bins (
#     id text primary key,
#     bin_id text unique not null,
#     status text not null,
#     bin_type text not null,
#     data jsonb not null
# );
#
# create table routes (
#     id text primary key,
#     status text not null,
#     assigned_to text,
#     data jsonb not null
# );
