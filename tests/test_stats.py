import copy
from datetime import datetime, timezone

from portal.services.stats import (
    ORDER_STATUSES,
    summarize_customers,
    summarize_inventory,
    summarize_orders,
    summarize_products,
)


def test_empty_collections_summarize_to_zero():
    summary = summarize_orders([])
    assert summary["counts"] == {status: 0 for status in ORDER_STATUSES}
    assert summary["total"] == 0
    assert summary["revenue"] == 0

    assert summarize_inventory([]) == {"total_units": 0, "low_stock": 0, "out_of_stock": 0, "total_value": 0}
    assert summarize_customers([])["average_spent"] == 0
    assert summarize_products([]) == {"total": 0, "active": 0, "low_stock": 0, "out_of_stock": 0}


def test_order_counts_by_status_without_mutating_input():
    records = [
        {"status": "pending", "total_amount": 10},
        {"status": "pending", "total_amount": 5.5},
        {"status": "delivered", "total_amount": "20"},
        {"status": "mystery", "total_amount": 1},
    ]
    before = copy.deepcopy(records)

    summary = summarize_orders(records)

    assert records == before
    assert summary["counts"]["pending"] == 2
    assert summary["counts"]["delivered"] == 1
    assert summary["counts"]["refunded"] == 0
    assert "mystery" not in summary["counts"]
    assert summary["total"] == 4
    assert summary["revenue"] == 36.5


def test_inventory_summary():
    records = [
        {"quantity": 0, "low_stock_alert": 10, "total_value": 0},
        {"quantity": 5, "low_stock_alert": 10, "total_value": 50},
        {"quantity": 50, "low_stock_alert": 10, "total_value": 2000},
    ]
    assert summarize_inventory(records) == {
        "total_units": 55,
        "low_stock": 1,
        "out_of_stock": 1,
        "total_value": 2050,
    }


def test_customer_summary():
    now = datetime(2026, 5, 20, tzinfo=timezone.utc)
    records = [
        {"created_at": "2026-05-02T10:00:00+00:00", "order_count": 2, "total_spent": 60},
        {"created_at": "2026-04-28T10:00:00+00:00", "order_count": 0, "total_spent": 0},
        {"created_at": "2025-05-10T10:00:00+00:00", "order_count": 1, "total_spent": 15},
    ]
    summary = summarize_customers(records, now=now)

    assert summary["total"] == 3
    assert summary["new_this_month"] == 1
    assert summary["active"] == 2
    assert summary["total_spent"] == 75
    assert summary["average_spent"] == 25


def test_product_summary():
    records = [
        {"is_active": True, "stock": 0},
        {"is_active": True, "stock": 3},
        {"is_active": False, "stock": 40},
    ]
    assert summarize_products(records) == {"total": 3, "active": 2, "low_stock": 1, "out_of_stock": 1}
