"""
Authentication router for login, logout and the current user
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from portal.config import APP_TITLE, SESSION_COOKIE
from portal.context import AppContext, Portal
from portal.deps import (
    clear_session_cookie,
    get_context,
    get_portal,
    get_templates,
    safe_redirect,
    set_session_cookie,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def render_login(request: Request, templates: Jinja2Templates, redirect: str, email: str = "",
                 error: Optional[str] = None, status_code: int = 200):
    return templates.TemplateResponse(request, "login.html", {
        "request": request,
        "title": "Login",
        "header": "Login",
        "app_title": APP_TITLE,
        "redirect": redirect,
        "email": email,
        "error": error,
    }, status_code=status_code)


@router.get("/login", response_class=HTMLResponse)
async def login_page(
    request: Request,
    redirect: Optional[str] = None,
    context: AppContext = Depends(get_context),
    templates: Jinja2Templates = Depends(get_templates),
):
    """Login page; an existing session goes straight to its destination"""
    target = safe_redirect(redirect)
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        check = await context.sessions.check(token)
        if check.authenticated:
            response = RedirectResponse(url=target, status_code=302)
            if check.refreshed:
                set_session_cookie(response, context, check.session)
            return response

    return render_login(request, templates, target)


@router.post("/login")
async def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    redirect: str = Form("/"),
    context: AppContext = Depends(get_context),
    templates: Jinja2Templates = Depends(get_templates),
):
    """Authenticate against Supabase and start a session"""
    target = safe_redirect(redirect)
    result = await context.sessions.sign_in(email, password)
    if not result.ok:
        return render_login(request, templates, target, email=email, error=result.error, status_code=401)

    # Profile is ready before the first signed-in render
    await context.profiles.load(result.session)

    response = RedirectResponse(url=target, status_code=303)
    set_session_cookie(response, context, result.session)
    return response


@router.post("/logout")
async def logout(request: Request, context: AppContext = Depends(get_context)):
    """Sign out; the cookie and local snapshots go regardless of the server answer"""
    session = context.sessions.read_token(request.cookies.get(SESSION_COOKIE))
    if session is not None:
        await context.sessions.sign_out(session)
        context.end_session(session.sid)

    response = RedirectResponse(url="/login", status_code=303)
    clear_session_cookie(response)
    return response


@router.get("/api/auth/me")
async def get_current_user_info(portal: Portal = Depends(get_portal)):
    """Current signed-in user"""
    profile = portal.profile
    return JSONResponse(content={
        "ok": True,
        "user": {
            "id": profile.user_id,
            "name": profile.display_name,
            "email": profile.email,
            "role": profile.role,
            "role_label": profile.role_label,
        } if profile else None,
        "demo": portal.demo,
    })
