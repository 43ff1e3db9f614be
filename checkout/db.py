"""
Database Module - Supabase client

Provides a singleton async Supabase client for the order-history lookup
and the abandoned-cart store.
"""

import os
from typing import Optional

from supabase._async.client import AsyncClient, create_client as acreate_client


SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")


_async_supabase_client: Optional[AsyncClient] = None


async def get_supabase() -> AsyncClient:
    """
    Get async Supabase client (singleton).
    """
    global _async_supabase_client

    if _async_supabase_client is None:
        if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        _async_supabase_client = await acreate_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)

    return _async_supabase_client


class Tables:
    """Supabase table names used by the engine."""

    SALES = "sales"
    ABANDONED_CARTS = "abandoned_carts"
