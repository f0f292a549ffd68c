"""
Site settings router
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from portal.context import AppContext, Portal
from portal.deps import get_context, get_portal, get_templates, page_context
from portal.errors import PortalError
from portal.services.settings_service import remember_main_site_url

router = APIRouter()


@router.get("/settings", response_class=HTMLResponse)
async def settings_page(
    request: Request,
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
    templates: Jinja2Templates = Depends(get_templates),
):
    """Store settings page"""
    settings = await context.site_settings.load()
    return templates.TemplateResponse(request, "settings.html", page_context(
        request, context, portal,
        title="Settings",
        active="settings",
        settings=settings,
    ))


@router.post("/settings")
async def save_settings(
    request: Request,
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
):
    form = await request.form()
    try:
        saved = await context.site_settings.save(dict(form), actor_id=portal.actor_id)
    except PortalError as e:
        context.notify(portal, e.message, "error")
    else:
        if portal.sid:
            remember_main_site_url(context.snapshots, portal.sid, saved.get("main_site_url"))
        context.notify(portal, "Settings saved successfully!", "success")
    return RedirectResponse(url="/settings", status_code=303)
