"""
Supabase Client
===============
Configured Supabase client for the brief engine and the auth helper.

Uses the service_role key (not the anon key) because the backend reads
workouts, sets and meals on behalf of an already-verified user. Every
query the engine issues is scoped by ``user_id`` explicitly, and the
engine never writes to these tables.

PostgREST calls get a short timeout: the aggregator treats a slow table
like a failed one, so a hung meals query costs the user their nutrition
line, not their whole brief.
"""

from functools import lru_cache

from supabase import Client, create_client
from supabase.client import ClientOptions

from app.config import get_settings


@lru_cache
def get_supabase_client() -> Client:
    settings = get_settings()
    options = ClientOptions(postgrest_client_timeout=settings.supabase_query_timeout_seconds)
    return create_client(settings.supabase_url, settings.supabase_service_key, options=options)
