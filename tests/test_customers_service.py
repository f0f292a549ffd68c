import asyncio

import pytest

from portal.errors import FetchFailure


def test_load_joins_orders_and_profile_names(context):
    records = asyncio.run(context.customers.load())

    jane, sam = records
    assert jane["name"] == "Jane Doe"
    assert jane["initials"] == "JD"
    assert jane["order_count"] == 2
    assert jane["total_spent"] == 60.0
    assert jane["reference"] == "CUST-CUST-0"

    assert sam["name"] == "sam"
    assert sam["initials"] == "SA"
    assert sam["order_count"] == 1
    assert sam["total_spent"] == 15.0


def test_stats_follow_loaded_collection(context):
    asyncio.run(context.customers.load())

    stats = context.customers.stats()
    assert stats["total"] == 2
    assert stats["active"] == 2
    assert stats["total_spent"] == 75.0


def test_profile_lookup_failure_fails_the_load(context, fake):
    fake.fail("profiles")

    with pytest.raises(FetchFailure):
        asyncio.run(context.customers.load())

    assert context.customers.records == []
