"""
Single Supabase client for the application
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from supabase import ASupabaseAuthClient, AsyncClient, acreate_client

from portal.config import Settings

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, str], Awaitable[Any]]
AuthFactory = Callable[[str, str], Any]


def create_auth_client(url: str, key: str) -> ASupabaseAuthClient:
    """Auth-only client that keeps no session of its own"""
    return ASupabaseAuthClient(
        url=f"{url.rstrip('/')}/auth/v1",
        headers={"apiKey": key, "Authorization": f"Bearer {key}"},
        auto_refresh_token=False,
        persist_session=False,
    )


class Gateway:
    """Lazily builds one process-wide Supabase client and hands it out.

    ``get_client`` never raises: a missing URL/key or a driver failure both
    yield ``None`` so pages can degrade to an empty demo state.

    Password sign-in and token refresh go through ``get_auth_client`` so the
    data client keeps its service-role Authorization header.
    """

    def __init__(
        self,
        settings: Settings,
        factory: Optional[ClientFactory] = None,
        auth_factory: Optional[AuthFactory] = None,
    ):
        self.settings = settings
        self._factory = factory or acreate_client
        self._auth_factory = auth_factory or create_auth_client
        self._client: Optional[AsyncClient] = None
        self._auth_client: Optional[ASupabaseAuthClient] = None
        self._attempted = False
        self._lock = asyncio.Lock()

    async def get_client(self) -> Optional[AsyncClient]:
        if self._attempted:
            return self._client

        async with self._lock:
            if self._attempted:
                return self._client

            # Flag is set only once the outcome is known; waiters re-check under the lock
            try:
                if not self.settings.supabase_url:
                    logger.warning("⚠️ Supabase URL not configured, running in demo mode")
                    return None
                if not self.settings.supabase_key:
                    logger.warning("⚠️ Supabase key not configured, running in demo mode")
                    return None

                try:
                    self._client = await self._factory(self.settings.supabase_url, self.settings.supabase_key)
                except Exception as e:
                    logger.error(f"Could not initialize Supabase client: {e}")
                    self._client = None
                    return None

                logger.info(f"🔧 Supabase client initialized for {self.settings.supabase_url}")
                return self._client
            finally:
                self._attempted = True

    def get_auth_client(self) -> Optional[ASupabaseAuthClient]:
        if self._auth_client is None and self.settings.backend_configured:
            try:
                self._auth_client = self._auth_factory(self.settings.supabase_url, self.settings.supabase_key)
            except Exception as e:
                logger.error(f"Could not initialize Supabase auth client: {e}")
                return None
        return self._auth_client

    def reset(self):
        """Drop the handles so the next call builds fresh ones"""
        self._client = None
        self._auth_client = None
        self._attempted = False
