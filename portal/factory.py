"""
Application factory for creating and configuring the FastAPI app
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from portal.config import APP_TITLE, APP_VERSION, STATIC_DIR, TEMPLATES_DIR, Settings, get_settings
from portal.context import AppContext
from portal.deps import login_url
from portal.errors import PortalError, SessionAbsent
from portal.middleware import SessionGuardMiddleware
from portal.services.supa import AuthFactory, ClientFactory
from portal.utils import formatting

logger = logging.getLogger(__name__)

# Navigation items for the sidebar
NAV_ITEMS = [
    {"id": "dashboard", "name": "Dashboard", "icon": "fa-chart-line", "url": "/"},
    {"id": "products", "name": "Products", "icon": "fa-box", "url": "/products"},
    {"id": "orders", "name": "Orders", "icon": "fa-shopping-cart", "url": "/orders"},
    {"id": "inventory", "name": "Inventory", "icon": "fa-warehouse", "url": "/inventory"},
    {"id": "customers", "name": "Customers", "icon": "fa-users", "url": "/customers"},
    {"id": "settings", "name": "Settings", "icon": "fa-cog", "url": "/settings"},
]


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_templates() -> Jinja2Templates:
    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    templates.env.globals["NAV_ITEMS"] = NAV_ITEMS
    templates.env.filters["money"] = formatting.format_money
    templates.env.filters["date"] = formatting.format_date
    templates.env.filters["growth"] = formatting.format_growth
    templates.env.filters["status_label"] = formatting.status_label
    templates.env.filters["stock_badge"] = formatting.stock_badge
    return templates


def create_app(
    settings: Optional[Settings] = None,
    gateway_factory: Optional[ClientFactory] = None,
    auth_factory: Optional[AuthFactory] = None,
) -> FastAPI:
    """Create and configure the FastAPI application"""
    settings = settings or get_settings()
    configure_logging(settings)

    # Create FastAPI instance
    app = FastAPI(
        title=APP_TITLE,
        version=APP_VERSION,
        debug=settings.debug
    )

    app.state.context = AppContext(settings, gateway_factory, auth_factory)
    app.state.templates = create_templates()

    # Add session guard
    app.add_middleware(SessionGuardMiddleware)

    # Mount static files
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    # Health check endpoint
    @app.get("/__whoami")
    def health_check():
        """Health check endpoint"""
        return {
            "entrypoint": "main.py",
            "status": "healthy",
            "version": APP_VERSION,
            "debug": settings.debug,
            "backend_configured": settings.backend_configured,
        }

    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError):
        if isinstance(exc, SessionAbsent) and not request.url.path.startswith("/api/"):
            return RedirectResponse(url=login_url(request), status_code=302)
        logger.error(f"Unhandled {exc.__class__.__name__} on {request.url.path}: {exc.message}")
        if request.url.path.startswith("/api/"):
            return JSONResponse(content={"ok": False, "error": exc.message}, status_code=exc.status_code)
        return request.app.state.templates.TemplateResponse(request, "error.html", {
            "request": request,
            "title": "Error",
            "app_title": APP_TITLE,
            "message": exc.message,
        }, status_code=exc.status_code)

    # Register routers
    from portal.routers import auth, customers, hub, inventory, orders, products, settings as settings_router

    app.include_router(auth.router)
    app.include_router(hub.router)
    app.include_router(orders.router)
    app.include_router(inventory.router)
    app.include_router(products.router)
    app.include_router(customers.router)
    app.include_router(settings_router.router)

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.context.shutdown()

    logger.info(f"🚀 {APP_TITLE} {APP_VERSION} ready (backend configured: {settings.backend_configured})")
    return app
