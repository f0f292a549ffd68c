"""
Orders router: listing, detail, status changes and CSV export
"""
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from portal.context import AppContext, Portal
from portal.deps import get_context, get_portal, get_templates, page_context, safe_redirect
from portal.errors import PortalError
from portal.services.orders_service import filter_orders
from portal.services.stats import ORDER_STATUSES
from portal.utils.formatting import status_label

router = APIRouter()

NO_CACHE = {
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/orders", response_class=HTMLResponse)
async def orders_page(
    request: Request,
    status: Optional[str] = None,
    q: Optional[str] = None,
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
    templates: Jinja2Templates = Depends(get_templates),
):
    """Orders management page"""
    orders = context.orders
    if not portal.demo:
        try:
            await orders.load()
        except PortalError as e:
            # The previous collection stays on screen
            context.notify(portal, e.message, "error")

    return templates.TemplateResponse(request, "orders.html", page_context(
        request, context, portal,
        title="Orders",
        active="orders",
        orders=filter_orders(orders.records, status, q),
        stats=orders.stats(),
        statuses=[(value, status_label(value)) for value in ORDER_STATUSES],
        status_filter=status or "all",
        query=q or "",
    ))


@router.get("/orders/{order_id}", response_class=HTMLResponse)
async def order_detail_page(
    request: Request,
    order_id: str,
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
    templates: Jinja2Templates = Depends(get_templates),
):
    """Single order with its line items"""
    try:
        details = await context.orders.get_details(order_id)
    except PortalError as e:
        context.notify(portal, e.message, "error")
        return RedirectResponse(url="/orders", status_code=303)

    return templates.TemplateResponse(request, "order_detail.html", page_context(
        request, context, portal,
        title=f"Order {details['order']['reference']}",
        active="orders",
        order=details["order"],
        items=details["items"],
        statuses=[(value, status_label(value)) for value in ORDER_STATUSES],
    ))


@router.post("/orders/{order_id}/status")
async def update_order_status(
    order_id: str,
    status: str = Form(""),
    next: str = Form("/orders"),
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
):
    """Form post from the orders table or the detail view"""
    try:
        await context.orders.set_status(order_id, status, actor_id=portal.actor_id)
        context.notify(portal, "Order status updated successfully", "success")
    except PortalError as e:
        context.notify(portal, e.message, "error")

    return RedirectResponse(url=safe_redirect(next, "/orders"), status_code=303)


@router.get("/api/orders")
async def list_orders_api(
    status: Optional[str] = None,
    q: Optional[str] = None,
    context: AppContext = Depends(get_context),
):
    """Freshly loaded orders with their status counts"""
    orders = context.orders
    try:
        await orders.load()
    except PortalError as e:
        return JSONResponse(content={"ok": False, "error": e.message}, status_code=e.status_code)

    return JSONResponse(
        content={"ok": True, "orders": filter_orders(orders.records, status, q), "stats": orders.stats()},
        headers=NO_CACHE,
    )


@router.get("/api/orders/export")
async def export_orders_api(context: AppContext = Depends(get_context)):
    """Current orders as a CSV download"""
    orders = context.orders
    try:
        await orders.load()
    except PortalError as e:
        return JSONResponse(content={"ok": False, "error": e.message}, status_code=e.status_code)

    return Response(
        content=orders.export_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=\"orders.csv\"", **NO_CACHE},
    )


@router.post("/api/orders/{order_id}/status")
async def update_order_status_api(
    order_id: str,
    request: Request,
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
):
    """Change one order's status, then return the reloaded record"""
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(content={"ok": False, "error": "Invalid JSON body"}, status_code=400)

    status = payload.get("status", "") if isinstance(payload, dict) else ""
    try:
        await context.orders.set_status(order_id, status, actor_id=portal.actor_id)
    except PortalError as e:
        return JSONResponse(content={"ok": False, "error": e.message}, status_code=e.status_code)

    return JSONResponse(content={"ok": True, "order": context.orders.find(order_id)})
