"""
Products router: catalogue listing, create, edit and delete
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from portal.context import AppContext, Portal
from portal.deps import get_context, get_portal, get_templates, page_context
from portal.errors import PortalError

router = APIRouter()

CATEGORIES = ["Lip Gloss", "Lipstick", "Lip Liner", "Lip Balm", "Lip Oil", "Accessories"]


def matches(record, query: str) -> bool:
    return query in f"{record['name']} {record['sku']} {record['category']}".lower()


@router.get("/products", response_class=HTMLResponse)
async def products_page(
    request: Request,
    q: Optional[str] = None,
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
    templates: Jinja2Templates = Depends(get_templates),
):
    """Products management page"""
    products = context.products
    if not portal.demo:
        try:
            await products.load()
        except PortalError as e:
            context.notify(portal, e.message, "error")

    query = (q or "").strip().lower()
    records = [record for record in products.records if not query or matches(record, query)]

    return templates.TemplateResponse(request, "products.html", page_context(
        request, context, portal,
        title="Products",
        active="products",
        products=records,
        stats=products.stats(),
        categories=CATEGORIES,
        query=q or "",
    ))


@router.post("/products")
async def create_product(
    request: Request,
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
):
    form = await request.form()
    try:
        await context.products.create(dict(form), actor_id=portal.actor_id)
        context.notify(portal, "Product added successfully!", "success")
    except PortalError as e:
        context.notify(portal, e.message, "error")
    return RedirectResponse(url="/products", status_code=303)


@router.post("/products/{product_id}")
async def update_product(
    product_id: str,
    request: Request,
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
):
    form = await request.form()
    try:
        await context.products.update(product_id, dict(form), actor_id=portal.actor_id)
        context.notify(portal, "Product updated successfully!", "success")
    except PortalError as e:
        context.notify(portal, e.message, "error")
    return RedirectResponse(url="/products", status_code=303)


@router.post("/products/{product_id}/delete")
async def delete_product(
    product_id: str,
    context: AppContext = Depends(get_context),
    portal: Portal = Depends(get_portal),
):
    try:
        await context.products.delete(product_id, actor_id=portal.actor_id)
        context.notify(portal, "Product deleted successfully!", "success")
    except PortalError as e:
        context.notify(portal, e.message, "error")
    return RedirectResponse(url="/products", status_code=303)


@router.get("/api/products")
async def list_products_api(context: AppContext = Depends(get_context)):
    products = context.products
    try:
        await products.load()
    except PortalError as e:
        return JSONResponse(content={"ok": False, "error": e.message}, status_code=e.status_code)

    return JSONResponse(content={"ok": True, "products": products.records, "stats": products.stats()})
