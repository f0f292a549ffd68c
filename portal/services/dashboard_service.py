"""
Dashboard service: headline numbers, recent orders, top products and activity
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from portal.config import DASHBOARD_LIST_SIZE, TOP_PRODUCTS_SAMPLE
from portal.errors import ConfigurationMissing, FetchFailure, describe
from portal.services.supa import Gateway
from portal.utils.formatting import (
    ACTIVITY_ICONS,
    format_activity_action,
    format_activity_entity,
    order_reference,
    status_label,
    time_ago,
    to_float,
)

logger = logging.getLogger(__name__)

PERIOD_DAYS = 30


def growth(current: float, previous: float) -> Optional[float]:
    """Percent change against the previous period; None when there is nothing to compare"""
    if not previous:
        return None
    return round((current - previous) / previous * 100, 1)


def top_products(order_items: List[Dict[str, Any]], limit: int = DASHBOARD_LIST_SIZE) -> List[Dict[str, Any]]:
    """Aggregate units and revenue per product, best sellers first"""
    sales: Dict[Any, Dict[str, Any]] = {}
    for item in order_items:
        variant = item.get("product_variants") or {}
        product_id = variant.get("product_id")
        if not product_id:
            continue
        product = variant.get("products") or {}
        quantity = int(item.get("quantity") or 0)
        entry = sales.setdefault(product_id, {"name": product.get("name") or "Unknown Product", "sales": 0, "revenue": 0.0})
        entry["sales"] += quantity
        entry["revenue"] += quantity * to_float(variant.get("price"))

    ranked = sorted(sales.values(), key=lambda entry: entry["sales"], reverse=True)[:limit]
    for entry in ranked:
        entry["revenue"] = round(entry["revenue"], 2)
    return ranked


class DashboardService:
    """Loads every dashboard panel concurrently; the last good snapshot is kept on failure."""

    def __init__(self, gateway: Gateway):
        self.gateway = gateway
        self.snapshot: Optional[Dict[str, Any]] = None
        self._generation = 0
        self._applied_generation = 0

    async def _revenue(self, client, start: datetime, end: datetime) -> float:
        response = await client.table("orders")\
            .select("total_amount, created_at")\
            .eq("status", "delivered")\
            .gte("created_at", start.isoformat())\
            .lt("created_at", end.isoformat())\
            .execute()
        return round(sum(to_float(order.get("total_amount")) for order in response.data or []), 2)

    async def _count(self, client, table: str, start: Optional[datetime] = None, end: Optional[datetime] = None) -> int:
        query = client.table(table).select("id", count="exact")
        if start is not None:
            query = query.gte("created_at", start.isoformat())
        if end is not None:
            query = query.lt("created_at", end.isoformat())
        response = await query.execute()
        return response.count or 0

    async def _active_products(self, client) -> int:
        response = await client.table("products")\
            .select("id", count="exact")\
            .eq("is_active", True)\
            .is_("deleted_at", "null")\
            .execute()
        return response.count or 0

    async def _recent_orders(self, client) -> List[Dict[str, Any]]:
        response = await client.table("orders")\
            .select("id, total_amount, status, created_at, customers (email)")\
            .order("created_at", desc=True)\
            .limit(DASHBOARD_LIST_SIZE)\
            .execute()
        return [
            {
                "id": order["id"],
                "reference": order_reference(order["id"]),
                "customer": (order.get("customers") or {}).get("email") or "Guest",
                "total_amount": to_float(order.get("total_amount")),
                "status": order.get("status") or "pending",
                "status_label": status_label(order.get("status")),
            }
            for order in response.data or []
        ]

    async def _top_products(self, client) -> List[Dict[str, Any]]:
        response = await client.table("order_items")\
            .select("quantity, variant_id, product_variants (id, price, product_id, products (id, name, category))")\
            .limit(TOP_PRODUCTS_SAMPLE)\
            .execute()
        return top_products(response.data or [])

    async def _recent_activity(self, client) -> List[Dict[str, Any]]:
        try:
            response = await client.table("activity_logs")\
                .select("*")\
                .order("created_at", desc=True)\
                .limit(DASHBOARD_LIST_SIZE)\
                .execute()
        except Exception as e:
            logger.error(f"Error loading activity: {e}")
            return []

        return [
            {
                "icon": ACTIVITY_ICONS.get(activity.get("action"), "fa-circle"),
                "action": format_activity_action(activity.get("action")),
                "entity": format_activity_entity(activity.get("entity"), activity.get("metadata")),
                "time_ago": time_ago(activity.get("created_at")),
            }
            for activity in response.data or []
        ]

    async def load(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        client = await self.gateway.get_client()
        if client is None:
            raise ConfigurationMissing("Database not connected")

        self._generation += 1
        generation = self._generation

        now = now or datetime.now(timezone.utc)
        current_start = now - timedelta(days=PERIOD_DAYS)
        previous_start = now - timedelta(days=PERIOD_DAYS * 2)

        try:
            (
                revenue, previous_revenue,
                total_orders, orders_now, orders_before,
                total_customers, customers_now, customers_before,
                active_products,
                recent_orders, best_sellers, activity,
            ) = await asyncio.gather(
                self._revenue(client, current_start, now),
                self._revenue(client, previous_start, current_start),
                self._count(client, "orders"),
                self._count(client, "orders", current_start, now),
                self._count(client, "orders", previous_start, current_start),
                self._count(client, "customers"),
                self._count(client, "customers", current_start, now),
                self._count(client, "customers", previous_start, current_start),
                self._active_products(client),
                self._recent_orders(client),
                self._top_products(client),
                self._recent_activity(client),
            )
        except Exception as e:
            message = f"Error loading dashboard data: {describe(e)}"
            logger.error(message)
            raise FetchFailure(message, cause=e)

        snapshot = {
            "revenue": {"total": revenue, "growth": growth(revenue, previous_revenue)},
            "orders": {"total": total_orders, "growth": growth(orders_now, orders_before)},
            "customers": {"total": total_customers, "growth": growth(customers_now, customers_before)},
            # No previous-period baseline exists for the live catalogue
            "products": {"total": active_products, "growth": None},
            "recent_orders": recent_orders,
            "top_products": best_sellers,
            "recent_activity": activity,
        }

        if generation >= self._applied_generation:
            self._applied_generation = generation
            self.snapshot = snapshot
        return snapshot
