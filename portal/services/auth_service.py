"""
Session lookup, sign-in and sign-out against Supabase Auth
"""
import logging
import secrets
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Set

from itsdangerous import BadPayload, BadSignature, SignatureExpired, URLSafeTimedSerializer
from supabase import AuthError

from portal.config import Settings
from portal.errors import AuthenticationFailure
from portal.services.profile_service import field_of
from portal.services.snapshots import SnapshotStore
from portal.services.supa import Gateway

logger = logging.getLogger(__name__)


class SessionState(Enum):
    UNCHECKED = "unchecked"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass
class AuthSession:
    """Tokens issued by Supabase Auth plus the browser-session id"""
    sid: str
    access_token: str
    refresh_token: str
    expires_at: Optional[int] = None
    user_id: Optional[str] = None
    email: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["AuthSession"]:
        if not isinstance(payload, dict):
            return None
        if not payload.get("sid") or not payload.get("access_token"):
            return None
        return cls(
            sid=payload["sid"],
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or "",
            expires_at=payload.get("expires_at"),
            user_id=payload.get("user_id"),
            email=payload.get("email"),
        )


@dataclass
class SessionCheck:
    state: SessionState
    session: Optional[AuthSession] = None
    identity: Any = None
    refreshed: bool = False

    @property
    def authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED


@dataclass
class LoginResult:
    ok: bool
    session: Optional[AuthSession] = None
    error: Optional[str] = None


class SessionManager:
    """Owns the session cookie format and the auth round trips."""

    def __init__(self, gateway: Gateway, snapshots: SnapshotStore, settings: Settings):
        self.gateway = gateway
        self.snapshots = snapshots
        self.settings = settings
        self.serializer = URLSafeTimedSerializer(settings.secret_key)
        self._signing_out: Set[str] = set()

    # Cookie codec
    def issue_token(self, session: AuthSession) -> str:
        return self.serializer.dumps(session.to_payload(), salt="session")

    def read_token(self, token: Optional[str]) -> Optional[AuthSession]:
        if not token:
            return None
        try:
            payload = self.serializer.loads(token, salt="session", max_age=self.settings.session_max_age)
        except (BadSignature, SignatureExpired, BadPayload):
            return None
        return AuthSession.from_payload(payload)

    def _from_auth_session(self, auth_session: Any, sid: Optional[str] = None) -> AuthSession:
        user = field_of(auth_session, "user")
        return AuthSession(
            sid=sid or secrets.token_urlsafe(16),
            access_token=field_of(auth_session, "access_token"),
            refresh_token=field_of(auth_session, "refresh_token") or "",
            expires_at=field_of(auth_session, "expires_at"),
            user_id=field_of(user, "id"),
            email=field_of(user, "email"),
        )

    async def check(self, token: Optional[str]) -> SessionCheck:
        """Resolve the cookie into AUTHENTICATED or UNAUTHENTICATED."""
        session = self.read_token(token)
        if session is None:
            return SessionCheck(SessionState.UNAUTHENTICATED)

        client = await self.gateway.get_client()
        if client is None:
            return SessionCheck(SessionState.UNAUTHENTICATED)

        try:
            response = await client.auth.get_user(session.access_token)
            user = field_of(response, "user")
            if user:
                session.user_id = field_of(user, "id") or session.user_id
                session.email = field_of(user, "email") or session.email
                return SessionCheck(SessionState.AUTHENTICATED, session, identity=user)
        except Exception as e:
            logger.info(f"Access token rejected, attempting refresh: {e}")

        if not session.refresh_token:
            return SessionCheck(SessionState.UNAUTHENTICATED)

        auth = self.gateway.get_auth_client()
        if auth is None:
            return SessionCheck(SessionState.UNAUTHENTICATED)

        try:
            response = await auth.refresh_session(session.refresh_token)
            fresh = field_of(response, "session")
            if fresh and field_of(fresh, "access_token"):
                renewed = self._from_auth_session(fresh, sid=session.sid)
                return SessionCheck(
                    SessionState.AUTHENTICATED,
                    renewed,
                    identity=field_of(response, "user") or field_of(fresh, "user"),
                    refreshed=True,
                )
        except Exception as e:
            logger.warning(f"Session refresh failed: {e}")

        return SessionCheck(SessionState.UNAUTHENTICATED)

    async def sign_in(self, email: Optional[str], password: Optional[str]) -> LoginResult:
        """Exchange credentials for a session; failures come back as messages."""
        email = (email or "").strip()
        if not email or not password:
            return LoginResult(False, error="Please enter email and password")

        client = await self.gateway.get_client()
        auth = self.gateway.get_auth_client()
        if client is None or auth is None:
            return LoginResult(False, error="Database not connected")

        try:
            session = await self._authenticate(auth, email, password)
        except AuthenticationFailure as e:
            return LoginResult(False, error=e.message)

        logger.info(f"✅ Signed in {session.email}")
        return LoginResult(True, session=session)

    async def _authenticate(self, auth, email: str, password: str) -> AuthSession:
        try:
            response = await auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as e:
            logger.error(f"Login error for {email}: {e}")
            raise AuthenticationFailure(getattr(e, "message", None) or "Invalid email or password", cause=e)
        except Exception as e:
            logger.error(f"Unexpected login error for {email}: {e}")
            raise AuthenticationFailure("Unexpected error during login", cause=e)

        auth_session = field_of(response, "session")
        if not auth_session or not field_of(auth_session, "access_token"):
            raise AuthenticationFailure("Invalid email or password")

        session = self._from_auth_session(auth_session)
        user = field_of(response, "user")
        session.user_id = field_of(user, "id") or session.user_id
        session.email = field_of(user, "email") or session.email or email
        return session

    async def sign_out(self, session: Optional[AuthSession]):
        """Best-effort server invalidation, then unconditional local purge."""
        if session is None:
            return

        sid = session.sid
        if sid in self._signing_out:
            logger.info("Sign-out already in progress for this session")
            self.snapshots.clear(sid)
            return

        self._signing_out.add(sid)
        try:
            client = await self.gateway.get_client()
            if client is not None:
                try:
                    await client.auth.admin.sign_out(session.access_token)
                except Exception as e:
                    logger.error(f"Error signing out: {e}")
        finally:
            self.snapshots.clear(sid)
            self._signing_out.discard(sid)
