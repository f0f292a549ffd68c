"""
Hub router for the dashboard
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates

from portal.context import AppContext, Portal
from portal.deps import get_context, get_portal, get_templates, page_context
from portal.errors import PortalError

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def dashboard_page(
    request: Request,
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
    templates: Jinja2Templates = Depends(get_templates),
):
    """Dashboard page"""
    dashboard = context.dashboard
    data = None
    if not portal.demo:
        try:
            data = await dashboard.load()
        except PortalError as e:
            context.notify(portal, e.message, "error")
            data = dashboard.snapshot

    return templates.TemplateResponse(request, "dashboard.html", page_context(
        request, context, portal,
        title="Dashboard",
        active="dashboard",
        dashboard=data,
    ))


@router.get("/api/dashboard")
async def dashboard_api(context: AppContext = Depends(get_context)):
    """Dashboard numbers as JSON"""
    try:
        data = await context.dashboard.load()
    except PortalError as e:
        return JSONResponse(content={"ok": False, "error": e.message}, status_code=e.status_code)
    return JSONResponse(content={"ok": True, "data": data})
