"""
Customers router
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates

from portal.context import AppContext, Portal
from portal.deps import get_context, get_portal, get_templates, page_context
from portal.errors import PortalError

router = APIRouter()


@router.get("/customers", response_class=HTMLResponse)
async def customers_page(
    request: Request,
    q: Optional[str] = None,
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
    templates: Jinja2Templates = Depends(get_templates),
):
    """Customers page"""
    customers = context.customers
    if not portal.demo:
        try:
            await customers.load()
        except PortalError as e:
            context.notify(portal, e.message, "error")

    query = (q or "").strip().lower()
    records = [
        record for record in customers.records
        if not query or query in f"{record['name']} {record['email']} {record['reference']}".lower()
    ]

    return templates.TemplateResponse(request, "customers.html", page_context(
        request, context, portal,
        title="Customers",
        active="customers",
        customers=records,
        stats=customers.stats(),
        query=q or "",
    ))


@router.get("/api/customers")
async def list_customers_api(context: AppContext = Depends(get_context)):
    customers = context.customers
    try:
        await customers.load()
    except PortalError as e:
        return JSONResponse(content={"ok": False, "error": e.message}, status_code=e.status_code)

    return JSONResponse(content={"ok": True, "customers": customers.records, "stats": customers.stats()})
