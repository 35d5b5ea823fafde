# app/core/supabase_client.py
import logging
import time
from functools import lru_cache

from supabase import AsyncClient, Client, acreate_client, create_client

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

_realtime_client: AsyncClient | None = None


@lru_cache
def supabase_admin() -> Client:
    """
    Create a Supabase client with the service role key.

    Use cases:
      - uploading product icons to Storage
      - any operation that needs to bypass RLS

    WARNING:
      - Never expose service role key to frontend.
      - Only backend should call this.

    Raises:
        RuntimeError: if SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is not set.
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError("Missing SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY in .env")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


async def supabase_realtime() -> AsyncClient | None:
    """
    Lazily create the async Supabase client used for Realtime channels.

    Realtime needs the async client; the sync one cannot hold a socket.
    Returns None (with a warning) when SUPABASE_URL / SUPABASE_KEY are missing.
    """
    global _realtime_client

    if not settings.realtime_configured:
        logger.warning("Supabase Realtime not configured (SUPABASE_URL / SUPABASE_KEY missing)")
        return None

    if _realtime_client is None:
        _realtime_client = await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    return _realtime_client


async def products_tags_channel():
    """
    Channel factory for RealtimeSubscription.

    Each call creates a fresh, uniquely named channel so that reconnect()
    never reuses a torn-down topic.
    """
    client = await supabase_realtime()
    if client is None:
        return None
    return client.channel(f"products-tags-{int(time.time() * 1000)}")
