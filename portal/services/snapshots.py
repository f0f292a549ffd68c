"""
Process-local snapshot storage keyed by browser session
"""
import time
from typing import Any, Dict, List, Optional, Tuple

PROFILE_KEY = "profile"
MAIN_SITE_URL_KEY = "mainSiteUrl"
NOTICES_KEY = "notices"


class SnapshotStore:
    """Key-value text storage for one process.

    Each browser session gets its own namespace. Values may carry an expiry;
    expired values read as missing. ``clear`` wipes a namespace wholesale.
    """

    def __init__(self):
        # {sid: {key: (value, expires_at or None)}}
        self._data: Dict[str, Dict[str, Tuple[Any, Optional[float]]]] = {}

    def get(self, sid: str, key: str, default: Any = None) -> Any:
        bucket = self._data.get(sid)
        if not bucket or key not in bucket:
            return default

        value, expires_at = bucket[key]
        if expires_at is not None and time.time() > expires_at:
            del bucket[key]
            return default
        return value

    def set(self, sid: str, key: str, value: Any, ttl: Optional[float] = None):
        expires_at = time.time() + ttl if ttl else None
        self._data.setdefault(sid, {})[key] = (value, expires_at)

    def delete(self, sid: str, key: str):
        bucket = self._data.get(sid)
        if bucket:
            bucket.pop(key, None)

    def clear(self, sid: str):
        self._data.pop(sid, None)

    def has_session(self, sid: str) -> bool:
        return sid in self._data

    # Transient notifications, popped on the next render
    def push_notice(self, sid: str, message: str, level: str = "info"):
        notices = self.get(sid, NOTICES_KEY) or []
        notices.append({"message": message, "type": level})
        self.set(sid, NOTICES_KEY, notices)

    def pop_notices(self, sid: str) -> List[Dict[str, str]]:
        notices = self.get(sid, NOTICES_KEY) or []
        self.delete(sid, NOTICES_KEY)
        return notices
