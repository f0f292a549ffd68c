"""
Orders service: load, status write-through and export
"""
import logging
from typing import Any, Dict, List, Optional

from portal.config import ORDERS_PAGE_SIZE
from portal.errors import FetchFailure, InvalidInput, PortalError, WriteFailure, describe
from portal.services.activity_service import log_activity
from portal.services.stats import ORDER_STATUSES, summarize_orders
from portal.services.sync import ResourceSynchronizer, gather_all
from portal.utils.csv_utils import records_to_csv
from portal.utils.formatting import format_date, initials, order_reference, to_float

logger = logging.getLogger(__name__)

ORDER_COLUMNS = """
    id,
    status,
    subtotal,
    discount_amount,
    tax_amount,
    total_amount,
    created_at,
    customer_id,
    customers (
        id,
        email
    )
"""

EXPORT_COLUMNS = [
    "reference", "status", "customer_name", "customer_email", "item_count",
    "subtotal", "discount_amount", "tax_amount", "total_amount", "created_at",
]


def to_order_record(row: Dict[str, Any], item_count: int) -> Dict[str, Any]:
    """Merge a base order row with its derived fields"""
    customer = row.get("customers") or {}
    name = customer.get("full_name") or customer.get("email") or "Guest"
    return {
        "id": row["id"],
        "reference": order_reference(row["id"]),
        "status": row.get("status") or "pending",
        "subtotal": to_float(row.get("subtotal")),
        "discount_amount": to_float(row.get("discount_amount")),
        "tax_amount": to_float(row.get("tax_amount")),
        "total_amount": to_float(row.get("total_amount")),
        "created_at": row.get("created_at"),
        "created_label": format_date(row.get("created_at")),
        "customer_id": row.get("customer_id"),
        "customer_name": name,
        "customer_email": customer.get("email") or "",
        "customer_initials": initials(name),
        "item_count": item_count,
    }


def filter_orders(records: List[Dict[str, Any]], status: Optional[str] = None, query: Optional[str] = None) -> List[Dict[str, Any]]:
    """Status filter plus a free-text match on reference and customer"""
    query = (query or "").strip().lower()
    filtered = []
    for record in records:
        if status and status != "all" and record["status"] != status:
            continue
        if query:
            haystack = f"{record['reference']} {record['customer_name']} {record['customer_email']}".lower()
            if query not in haystack:
                continue
        filtered.append(record)
    return filtered


class OrdersSynchronizer(ResourceSynchronizer):
    """Most recent orders first, capped at one page"""

    resource = "orders"

    def __init__(self, gateway, page_size: int = ORDERS_PAGE_SIZE):
        super().__init__(gateway)
        self.page_size = page_size

    async def _item_count(self, client, order_id: Any) -> int:
        response = await client.table("order_items")\
            .select("id")\
            .eq("order_id", order_id)\
            .execute()
        return len(response.data or [])

    async def fetch(self, client) -> List[Dict[str, Any]]:
        response = await client.table("orders")\
            .select(ORDER_COLUMNS)\
            .order("created_at", desc=True)\
            .limit(self.page_size)\
            .execute()
        rows = response.data or []

        counts = await gather_all(self._item_count(client, row["id"]) for row in rows)
        return [to_order_record(row, count) for row, count in zip(rows, counts)]

    def stats(self) -> Dict[str, Any]:
        return summarize_orders(self.records)

    async def set_status(self, order_id: Any, status: str, actor_id: Optional[str] = None):
        """Write one status, then always reload to resynchronize with the server."""
        if status not in ORDER_STATUSES:
            raise InvalidInput(f"Invalid status '{status}'. Must be one of: {', '.join(ORDER_STATUSES)}")

        client = await self.client()
        try:
            await client.table("orders")\
                .update({"status": status})\
                .eq("id", order_id)\
                .execute()
        except Exception as e:
            message = f"Error updating order status: {describe(e)}"
            logger.error(message)
            await self.raise_after_resync(WriteFailure(message, cause=e))

        action = "order.shipped" if status == "shipped" else "order.updated"
        await log_activity(client, action, "orders", order_id, {"status": status}, actor_id)
        await self.load()

    async def get_details(self, order_id: Any) -> Dict[str, Any]:
        """Order with customer and line items for the detail view"""
        client = await self.client()
        try:
            response = await client.table("orders")\
                .select("*, customers (id, email, phone)")\
                .eq("id", order_id)\
                .limit(1)\
                .execute()
            if not response.data:
                raise FetchFailure(f"Order {order_id} not found")
            order = response.data[0]

            items_response = await client.table("order_items")\
                .select("*, product_variants (id, sku, price, products (name, category))")\
                .eq("order_id", order_id)\
                .execute()
        except PortalError:
            raise
        except Exception as e:
            message = f"Error loading order details: {describe(e)}"
            logger.error(message)
            raise FetchFailure(message, cause=e)

        items = []
        for item in items_response.data or []:
            variant = item.get("product_variants") or {}
            product = variant.get("products") or {}
            quantity = int(item.get("quantity") or 0)
            price = to_float(item.get("unit_price", variant.get("price")))
            items.append({
                "id": item.get("id"),
                "product_name": product.get("name") or "Unknown Product",
                "category": product.get("category") or "N/A",
                "sku": variant.get("sku") or "N/A",
                "quantity": quantity,
                "unit_price": price,
                "line_total": round(quantity * price, 2),
            })

        record = to_order_record(order, len(items))
        record["customer_phone"] = (order.get("customers") or {}).get("phone") or ""
        return {"order": record, "items": items}

    def export_csv(self) -> bytes:
        return records_to_csv(self.records, EXPORT_COLUMNS)
