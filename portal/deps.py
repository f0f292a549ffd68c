"""
Request dependencies and session cookie helpers
"""
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import Response

from portal.config import APP_TITLE, SESSION_COOKIE
from portal.context import AppContext, Portal
from portal.errors import SessionAbsent
from portal.services.auth_service import AuthSession


def get_context(request: Request) -> AppContext:
    return request.app.state.context


# Get templates from app state
def get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates


def get_portal(request: Request) -> Portal:
    """Set by the session guard for every protected route"""
    portal = getattr(request.state, "portal", None)
    if portal is None:
        raise SessionAbsent("Authentication required")
    return portal


def set_session_cookie(response: Response, context: AppContext, session: AuthSession):
    response.set_cookie(
        key=SESSION_COOKIE,
        value=context.sessions.issue_token(session),
        max_age=context.settings.session_max_age,
        httponly=True,
        secure=context.settings.secure_cookies,
        samesite="lax",
    )


def clear_session_cookie(response: Response):
    response.delete_cookie(SESSION_COOKIE)


def safe_redirect(target: Optional[str], default: str = "/") -> str:
    """Only local absolute paths are followed after login"""
    if not target or not target.startswith("/") or target.startswith("//") or target.startswith("/\\"):
        return default
    return target


def login_url(request: Request) -> str:
    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    return "/login?" + urlencode({"redirect": target})


def page_context(request: Request, context: AppContext, portal: Portal, **extra: Any) -> Dict[str, Any]:
    """Common template variables for every signed-in page"""
    title = extra.pop("title", APP_TITLE)
    data = {
        "request": request,
        "title": title,
        "header": title,
        "app_title": APP_TITLE,
        "profile": portal.profile,
        "demo": portal.demo,
        "notices": context.take_notices(portal),
        "main_site_url": context.main_site_url(portal),
    }
    data.update(extra)
    return data
