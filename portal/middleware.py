"""
Session guard: every page except the public ones needs a live Supabase session
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from portal.config import SESSION_COOKIE
from portal.context import Portal
from portal.deps import login_url, set_session_cookie
from portal.services.profile_service import UserProfile

logger = logging.getLogger(__name__)

DEMO_PROFILE = UserProfile(display_name="Admin", role="admin")


class SessionGuardMiddleware(BaseHTTPMiddleware):
    """Resolves the session before any protected handler runs."""

    def __init__(self, app):
        super().__init__(app)
        # Public paths that don't require authentication
        self.public_paths = ("/login", "/logout", "/static", "/favicon.ico", "/__whoami")
        # API paths answer with 401 instead of a redirect
        self.api_prefix = "/api/"

    def is_public(self, path: str) -> bool:
        return any(path == public or path.startswith(public + "/") for public in self.public_paths)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if self.is_public(path):
            return await call_next(request)

        context = request.app.state.context

        # No backend: pages still render, just empty
        client = await context.gateway.get_client()
        if client is None:
            request.state.portal = Portal(profile=DEMO_PROFILE, demo=True)
            return await call_next(request)

        check = await context.sessions.check(request.cookies.get(SESSION_COOKIE))
        if not check.authenticated:
            logger.info(f"🔒 No session for {path}, sending to login")
            if path.startswith(self.api_prefix):
                return JSONResponse(
                    content={"ok": False, "error": "Authentication required"},
                    status_code=401,
                )
            response = RedirectResponse(url=login_url(request), status_code=302)
            if request.cookies.get(SESSION_COOKIE):
                response.delete_cookie(SESSION_COOKIE)
            return response

        profile = await context.profiles.current(check.session, identity=check.identity)
        request.state.portal = Portal(session=check.session, profile=profile)

        response = await call_next(request)
        if check.refreshed:
            set_session_cookie(response, context, check.session)
        return response
