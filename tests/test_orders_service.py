import asyncio

import pytest

from portal.errors import FetchFailure, InvalidInput, WriteFailure
from portal.services.orders_service import filter_orders
from portal.services.stats import ORDER_STATUSES
from portal.services.sync import ResourceSynchronizer


def item_fetch_for(order_id):
    return lambda query: query.filter_value("eq", "order_id") == order_id


def test_load_builds_records_newest_first(context):
    records = asyncio.run(context.orders.load())

    assert [record["id"] for record in records] == ["order-cccc", "order-bbbb", "order-aaaa"]
    assert {record["id"]: record["item_count"] for record in records} == {
        "order-aaaa": 1,
        "order-bbbb": 2,
        "order-cccc": 0,
    }
    newest = records[0]
    assert newest["reference"] == "#ORD-ORDER-CC"
    assert newest["customer_email"] == "sam@example.com"
    assert newest["total_amount"] == 15.0
    assert context.orders.loaded_at is not None


def test_load_twice_without_writes_is_identical(context):
    first = asyncio.run(context.orders.load())
    second = asyncio.run(context.orders.load())

    assert first == second
    assert context.orders.records == second


def test_failed_item_fetch_fails_load_and_keeps_previous_collection(context, fake):
    previous = asyncio.run(context.orders.load())
    fake.fail("order_items", when=item_fetch_for("order-bbbb"))

    with pytest.raises(FetchFailure):
        asyncio.run(context.orders.load())

    assert context.orders.records == previous
    assert context.orders.last_error


def test_first_load_failure_leaves_collection_empty(context, fake):
    fake.fail("orders")

    with pytest.raises(FetchFailure):
        asyncio.run(context.orders.load())

    assert context.orders.records == []


@pytest.mark.parametrize("status", ORDER_STATUSES)
def test_set_status_then_load_reflects_new_status(context, fake, status):
    asyncio.run(context.orders.set_status("order-aaaa", status))
    asyncio.run(context.orders.load())

    assert context.orders.find("order-aaaa")["status"] == status


def test_set_status_logs_activity(context, fake):
    asyncio.run(context.orders.set_status("order-bbbb", "shipped", actor_id="user-staff"))

    log = fake.rows("activity_logs")[-1]
    assert log["action"] == "order.shipped"
    assert log["entity_id"] == "order-bbbb"
    assert log["actor_id"] == "user-staff"


def test_invalid_status_is_rejected_before_any_write(context, fake):
    with pytest.raises(InvalidInput):
        asyncio.run(context.orders.set_status("order-aaaa", "teleported"))

    assert fake.calls_to("orders", "update") == []


def test_failed_write_still_reloads(context, fake):
    fake.fail("orders", op="update")

    with pytest.raises(WriteFailure):
        asyncio.run(context.orders.set_status("order-aaaa", "paid"))

    assert len(fake.calls_to("orders", "select")) == 1
    assert context.orders.find("order-aaaa")["status"] == "pending"


def test_failed_write_and_failed_reload_reports_the_write(context, fake):
    fake.fail("orders", op="update")
    fake.fail("orders", op="select")

    with pytest.raises(WriteFailure):
        asyncio.run(context.orders.set_status("order-aaaa", "paid"))


def test_reload_failure_after_successful_write(context, fake):
    fake.fail("orders", op="select")

    with pytest.raises(FetchFailure):
        asyncio.run(context.orders.set_status("order-aaaa", "paid"))

    assert fake.rows("orders")[0]["status"] == "paid"


def test_stale_load_does_not_overwrite_newer_one(context):
    class Scripted(ResourceSynchronizer):
        def __init__(self, gateway, script):
            super().__init__(gateway)
            self.script = script

        async def fetch(self, client):
            gate, records = self.script.pop(0)
            await gate.wait()
            return records

    async def scenario():
        await context.gateway.get_client()
        slow, fast = asyncio.Event(), asyncio.Event()
        sync = Scripted(context.gateway, [(slow, [{"id": "old"}]), (fast, [{"id": "new"}])])

        first = asyncio.create_task(sync.load())
        await asyncio.sleep(0)
        second = asyncio.create_task(sync.load())
        await asyncio.sleep(0)

        fast.set()
        await second
        slow.set()
        stale = await first
        return sync, stale

    sync, stale = asyncio.run(scenario())

    assert stale == [{"id": "old"}]
    assert sync.records == [{"id": "new"}]


def test_get_details(context):
    details = asyncio.run(context.orders.get_details("order-bbbb"))

    assert details["order"]["reference"] == "#ORD-ORDER-BB"
    assert details["order"]["customer_email"] == "jane@example.com"
    assert sorted(item["line_total"] for item in details["items"]) == [30.0, 40.0]


def test_get_details_for_missing_order(context):
    with pytest.raises(FetchFailure):
        asyncio.run(context.orders.get_details("order-zzzz"))


def test_filter_orders(context):
    records = asyncio.run(context.orders.load())

    assert [r["id"] for r in filter_orders(records, status="paid")] == ["order-bbbb"]
    assert [r["id"] for r in filter_orders(records, query="SAM")] == ["order-cccc"]
    assert len(filter_orders(records, status="all")) == 3


def test_export_csv(context):
    asyncio.run(context.orders.load())

    lines = context.orders.export_csv().decode("utf-8").strip().splitlines()

    assert lines[0].startswith("Reference,Status,Customer Name,Customer Email,Item Count")
    assert len(lines) == 4
    assert lines[1].startswith("#ORD-ORDER-CC,delivered")
