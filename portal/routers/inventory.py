"""
Inventory router: stock levels and adjustments
"""
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from portal.context import AppContext, Portal
from portal.deps import get_context, get_portal, get_templates, page_context
from portal.errors import PortalError
from portal.services.inventory_service import AdjustMode, filter_inventory

router = APIRouter()


@router.get("/inventory", response_class=HTMLResponse)
async def inventory_page(
    request: Request,
    status: Optional[str] = None,
    q: Optional[str] = None,
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
    templates: Jinja2Templates = Depends(get_templates),
):
    """Inventory management page"""
    inventory = context.inventory
    if not portal.demo:
        try:
            await inventory.load()
        except PortalError as e:
            context.notify(portal, e.message, "error")

    return templates.TemplateResponse(request, "inventory.html", page_context(
        request, context, portal,
        title="Inventory",
        active="inventory",
        items=filter_inventory(inventory.records, status, q),
        stats=inventory.stats(),
        modes=[mode.value for mode in AdjustMode],
        status_filter=status or "all",
        query=q or "",
    ))


@router.post("/inventory/{inventory_id}/adjust")
async def adjust_stock(
    inventory_id: str,
    mode: str = Form("add"),
    amount: str = Form(""),
    reason: str = Form(""),
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
):
    """Form post from the stock adjustment dialog"""
    try:
        await context.inventory.adjust(inventory_id, mode, amount, reason, actor_id=portal.actor_id)
        context.notify(portal, "Stock updated successfully!", "success")
    except PortalError as e:
        context.notify(portal, e.message, "error")

    return RedirectResponse(url="/inventory", status_code=303)


@router.get("/api/inventory")
async def list_inventory_api(
    status: Optional[str] = None,
    q: Optional[str] = None,
    context: AppContext = Depends(get_context),
):
    inventory = context.inventory
    try:
        await inventory.load()
    except PortalError as e:
        return JSONResponse(content={"ok": False, "error": e.message}, status_code=e.status_code)

    return JSONResponse(content={
        "ok": True,
        "items": filter_inventory(inventory.records, status, q),
        "stats": inventory.stats(),
    })


@router.post("/api/inventory/{inventory_id}/adjust")
async def adjust_stock_api(
    inventory_id: str,
    request: Request,
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
):
    """Adjust stock; body is {"mode": "add|remove|set", "amount": n, "reason": "..."}"""
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(content={"ok": False, "error": "Invalid JSON body"}, status_code=400)
    if not isinstance(payload, dict):
        payload = {}

    try:
        quantity = await context.inventory.adjust(
            inventory_id,
            payload.get("mode"),
            payload.get("amount"),
            payload.get("reason") or "",
            actor_id=portal.actor_id,
        )
    except PortalError as e:
        return JSONResponse(content={"ok": False, "error": e.message}, status_code=e.status_code)

    return JSONResponse(content={
        "ok": True,
        "quantity": quantity,
        "item": context.inventory.find(inventory_id),
    })
