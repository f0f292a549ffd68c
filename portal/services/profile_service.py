"""
Profile loading for the signed-in staff user
"""
import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Set

from portal.services.snapshots import PROFILE_KEY, SnapshotStore
from portal.services.supa import Gateway
from portal.utils.formatting import format_role

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "admin"


def field_of(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from a driver object or a plain dict"""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


@dataclass
class UserProfile:
    display_name: str
    role: str
    email: str = ""
    user_id: Optional[str] = None

    @property
    def role_label(self) -> str:
        return format_role(self.role)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(
            display_name=data.get("display_name") or "Admin",
            role=data.get("role") or DEFAULT_ROLE,
            email=data.get("email") or "",
            user_id=data.get("user_id"),
        )


def fallback_name(email: Optional[str]) -> str:
    if not email:
        return "Admin"
    return email.split("@")[0] or email


class ProfileLoader:
    """Resolves the display profile and keeps a short-lived snapshot of it."""

    def __init__(self, gateway: Gateway, snapshots: SnapshotStore, ttl: int = 300):
        self.gateway = gateway
        self.snapshots = snapshots
        self.ttl = ttl
        self._refreshing: Set[asyncio.Task] = set()

    async def load(self, session, identity: Any = None, persist: bool = True) -> UserProfile:
        """Fetch identity and ``profiles`` record; never returns None."""
        client = await self.gateway.get_client()

        if identity is None and client is not None:
            try:
                response = await client.auth.get_user(session.access_token)
                identity = field_of(response, "user")
            except Exception as e:
                logger.warning(f"Could not resolve identity for profile: {e}")

        email = field_of(identity, "email") or session.email or ""
        user_id = field_of(identity, "id") or session.user_id
        metadata = field_of(identity, "user_metadata") or {}

        record = None
        if client is not None and user_id:
            try:
                response = await client.table("profiles")\
                    .select("full_name, role")\
                    .eq("id", user_id)\
                    .limit(1)\
                    .execute()
                record = response.data[0] if response.data else None
            except Exception as e:
                logger.warning(f"Profile lookup failed for {user_id}: {e}")

        profile = UserProfile(
            display_name=field_of(record, "full_name") or fallback_name(email),
            role=field_of(record, "role") or metadata.get("role") or DEFAULT_ROLE,
            email=email,
            user_id=user_id,
        )

        if persist:
            self.snapshots.set(session.sid, PROFILE_KEY, profile.to_dict(), ttl=self.ttl)
        return profile

    def cached(self, session) -> Optional[UserProfile]:
        data = self.snapshots.get(session.sid, PROFILE_KEY)
        return UserProfile.from_dict(data) if data else None

    async def current(self, session, identity: Any = None) -> UserProfile:
        """Snapshot for instant paint plus a background refresh, or an awaited load."""
        profile = self.cached(session)
        if profile is None:
            return await self.load(session, identity=identity)

        task = asyncio.create_task(self._refresh(session, identity))
        self._refreshing.add(task)
        task.add_done_callback(self._refreshing.discard)
        return profile

    async def _refresh(self, session, identity: Any = None):
        profile = await self.load(session, identity=identity, persist=False)
        # A sign-out may have purged the namespace while we were fetching
        if self.snapshots.has_session(session.sid):
            self.snapshots.set(session.sid, PROFILE_KEY, profile.to_dict(), ttl=self.ttl)

    async def drain(self):
        """Wait for outstanding background refreshes"""
        if self._refreshing:
            await asyncio.gather(*list(self._refreshing), return_exceptions=True)
