"""
Display helpers used by services and templates
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

ACTIVITY_ACTIONS = {
    "product.created": "Product created",
    "product.updated": "Product updated",
    "product.deleted": "Product deleted",
    "order.created": "New order",
    "order.updated": "Order updated",
    "order.shipped": "Order shipped",
    "customer.created": "New customer",
    "settings.updated": "Settings updated",
    "inventory.updated": "Inventory updated",
}

ACTIVITY_ICONS = {
    "product.created": "fa-box",
    "product.updated": "fa-box",
    "product.deleted": "fa-box",
    "order.created": "fa-shopping-bag",
    "order.updated": "fa-shopping-bag",
    "order.shipped": "fa-truck",
    "customer.created": "fa-user-plus",
    "settings.updated": "fa-cog",
    "inventory.updated": "fa-warehouse",
}


def format_role(role: Optional[str]) -> str:
    """Render ``store_manager`` as ``Store Manager``"""
    if not role:
        return ""
    return " ".join(word.capitalize() for word in role.split("_") if word)


def order_reference(order_id: Any) -> str:
    return f"#ORD-{str(order_id)[:8].upper()}"


def customer_reference(customer_id: Any) -> str:
    return f"CUST-{str(customer_id)[:6].upper()}"


def initials(name: Optional[str], fallback: str = "") -> str:
    """Two-letter avatar text from a name, else from the fallback string"""
    if name and name.strip():
        return "".join(part[0] for part in name.split() if part)[:2].upper()
    return fallback[:2].upper()


def to_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def format_money(value: Any) -> str:
    return f"${to_float(value):,.2f}"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp from the backend into an aware datetime"""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def format_date(value: Any) -> str:
    parsed = parse_timestamp(value)
    if not parsed:
        return ""
    return f"{parsed.strftime('%b')} {parsed.day}, {parsed.year}"


def time_ago(value: Any, now: Optional[datetime] = None) -> str:
    then = parse_timestamp(value)
    if not then:
        return ""
    now = now or datetime.now(timezone.utc)
    seconds = (now - then).total_seconds()

    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    return f"{days} day{'s' if days > 1 else ''} ago"


def format_activity_action(action: Optional[str]) -> str:
    return ACTIVITY_ACTIONS.get(action or "", action or "")


def format_activity_entity(entity: Optional[str], metadata: Optional[Dict[str, Any]]) -> str:
    if metadata and metadata.get("name"):
        return metadata["name"]
    return entity or ""


def format_growth(growth: Optional[float]) -> str:
    if growth is None:
        return "n/a"
    sign = "+" if growth > 0 else ""
    return f"{sign}{growth:.1f}%"


def stock_badge(quantity: int, low_stock_alert: int) -> str:
    if quantity <= 0:
        return "Out of Stock"
    if quantity <= low_stock_alert:
        return "Low Stock"
    return "In Stock"


def status_label(status: Optional[str]) -> str:
    return format_role(status) or "Unknown"
