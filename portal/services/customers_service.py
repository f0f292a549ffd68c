"""
Customers service: customer list with order totals
"""
from typing import Any, Dict, List

from portal.config import CUSTOMERS_PAGE_SIZE
from portal.services.stats import summarize_customers
from portal.services.sync import ResourceSynchronizer, gather_all
from portal.utils.formatting import customer_reference, format_date, initials, to_float


def to_customer_record(customer: Dict[str, Any], orders: List[Dict[str, Any]], full_name: str) -> Dict[str, Any]:
    email = customer.get("email") or ""
    name = full_name or email.split("@")[0]
    return {
        "id": customer["id"],
        "reference": customer_reference(customer["id"]),
        "email": email,
        "phone": customer.get("phone") or "",
        "created_at": customer.get("created_at"),
        "joined_label": format_date(customer.get("created_at")),
        "user_id": customer.get("user_id"),
        "name": name,
        "initials": initials(full_name, fallback=email),
        "order_count": len(orders),
        "total_spent": round(sum(to_float(order.get("total_amount")) for order in orders), 2),
    }


class CustomersSynchronizer(ResourceSynchronizer):
    resource = "customers"

    def __init__(self, gateway, page_size: int = CUSTOMERS_PAGE_SIZE):
        super().__init__(gateway)
        self.page_size = page_size

    async def _enrich(self, client, customer: Dict[str, Any]) -> Dict[str, Any]:
        orders = await client.table("orders")\
            .select("id, total_amount")\
            .eq("customer_id", customer["id"])\
            .execute()

        full_name = ""
        if customer.get("user_id"):
            profile = await client.table("profiles")\
                .select("full_name")\
                .eq("id", customer["user_id"])\
                .limit(1)\
                .execute()
            if profile.data:
                full_name = profile.data[0].get("full_name") or ""

        return to_customer_record(customer, orders.data or [], full_name)

    async def fetch(self, client) -> List[Dict[str, Any]]:
        response = await client.table("customers")\
            .select("id, email, phone, created_at, user_id")\
            .order("created_at", desc=True)\
            .limit(self.page_size)\
            .execute()

        return await gather_all(self._enrich(client, customer) for customer in response.data or [])

    def stats(self) -> Dict[str, Any]:
        return summarize_customers(self.records)
