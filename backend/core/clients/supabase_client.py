import logging
from functools import lru_cache
from typing import Dict, Optional

from supabase import Client, ClientOptions, create_client

from settings import settings

logger = logging.getLogger(__name__)


@lru_cache
def get_supabase_client() -> Client:
    """Get cached Supabase client using the public anon key."""
    return create_client(settings.supabase_url, settings.supabase_anon_key)


@lru_cache
def get_admin_client() -> Client:
    """Get cached Supabase client using the service role key.

    Used for table access and the auth admin API, so row level security
    does not hide other users' rows from server-side checks.
    """
    return create_client(settings.supabase_url, settings.supabase_service_role_key)


def auth_client_options() -> ClientOptions:
    return ClientOptions(persist_session=False, auto_refresh_token=False, flow_type="pkce")


def create_auth_client(options: Optional[ClientOptions] = None) -> Client:
    """Create a short-lived client for a single sign-in or sign-up flow.

    Auth calls store the resulting session on the client, so every request
    gets its own instance instead of the cached ones.
    """
    return create_client(
        settings.supabase_url,
        settings.supabase_anon_key,
        options=options or auth_client_options(),
    )


def fetch_one(table: str, column: str, value, columns: str = "*") -> Optional[Dict]:
    """Return the first row where ``column == value``, or None."""
    client = get_admin_client()
    result = client.table(table).select(columns).eq(column, value).limit(1).execute()
    return result.data[0] if result.data else None


def health_check() -> bool:
    """Verify Supabase connection is working."""
    try:
        client = get_admin_client()
        client.table('document_metadata').select('id').limit(1).execute()
        logger.info("Supabase health check passed")
        return True
    except Exception as e:
        logger.error(f"Supabase health check failed: {str(e)}")
        return False
