"""
Summary counters derived from an already-loaded collection
"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from portal.config import LOW_STOCK_THRESHOLD
from portal.utils.formatting import parse_timestamp, to_float

ORDER_STATUSES = ("pending", "paid", "shipped", "delivered", "cancelled", "refunded")


def summarize_orders(records: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Per-status counts plus total and revenue"""
    counts = {status: 0 for status in ORDER_STATUSES}
    total = 0
    revenue = 0.0

    for record in records:
        total += 1
        status = record.get("status")
        if status in counts:
            counts[status] += 1
        revenue += to_float(record.get("total_amount"))

    return {"counts": counts, "total": total, "revenue": round(revenue, 2)}


def summarize_inventory(records: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    total_units = 0
    low_stock = 0
    out_of_stock = 0
    total_value = 0.0

    for record in records:
        quantity = int(record.get("quantity") or 0)
        threshold = record.get("low_stock_alert", LOW_STOCK_THRESHOLD)
        total_units += quantity
        if quantity == 0:
            out_of_stock += 1
        elif quantity <= threshold:
            low_stock += 1
        total_value += to_float(record.get("total_value"))

    return {
        "total_units": total_units,
        "low_stock": low_stock,
        "out_of_stock": out_of_stock,
        "total_value": round(total_value, 2),
    }


def summarize_customers(records: Iterable[Dict[str, Any]], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    total = 0
    new_this_month = 0
    active = 0
    total_spent = 0.0

    for record in records:
        total += 1
        created = parse_timestamp(record.get("created_at"))
        if created and created.year == now.year and created.month == now.month:
            new_this_month += 1
        if (record.get("order_count") or 0) > 0:
            active += 1
        total_spent += to_float(record.get("total_spent"))

    return {
        "total": total,
        "new_this_month": new_this_month,
        "active": active,
        "total_spent": round(total_spent, 2),
        "average_spent": round(total_spent / total, 2) if total else 0.0,
    }


def summarize_products(records: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    total = 0
    active = 0
    low_stock = 0
    out_of_stock = 0

    for record in records:
        total += 1
        if record.get("is_active"):
            active += 1
        stock = int(record.get("stock") or 0)
        if stock == 0:
            out_of_stock += 1
        elif stock <= LOW_STOCK_THRESHOLD:
            low_stock += 1

    return {"total": total, "active": active, "low_stock": low_stock, "out_of_stock": out_of_stock}
