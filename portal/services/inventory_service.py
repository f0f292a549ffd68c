"""
Inventory service: stock levels and adjustments
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from portal.config import LOW_STOCK_THRESHOLD
from portal.errors import FetchFailure, InvalidInput, PortalError, WriteFailure, describe
from portal.services.activity_service import log_activity
from portal.services.stats import summarize_inventory
from portal.services.sync import ResourceSynchronizer, utcnow_iso
from portal.utils.formatting import to_float

logger = logging.getLogger(__name__)

INVENTORY_COLUMNS = """
    id,
    quantity,
    reserved_quantity,
    variant_id,
    product_variants (
        id,
        sku,
        price,
        product_id,
        products (
            id,
            name,
            category
        )
    )
"""


class AdjustMode(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    SET = "set"

    @classmethod
    def parse(cls, value: Any) -> "AdjustMode":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower().replace(" stock", "")
        for mode in cls:
            if mode.value == text:
                return mode
        raise InvalidInput(f"Unknown adjustment type '{value}'")


class StockStatus:
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


def stock_status(available: int, threshold: int = LOW_STOCK_THRESHOLD) -> str:
    if available <= 0:
        return StockStatus.OUT_OF_STOCK
    if available <= threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def compute_adjusted_quantity(quantity: int, reserved: int, mode: AdjustMode, amount: int) -> int:
    """New on-hand quantity, never below what is already reserved"""
    quantity = quantity or 0
    reserved = reserved or 0

    if mode is AdjustMode.ADD:
        new_quantity = quantity + amount
    elif mode is AdjustMode.REMOVE:
        new_quantity = max(0, quantity - amount)
    else:
        new_quantity = amount

    return max(new_quantity, reserved)


def validate_amount(amount: Any) -> int:
    if amount is None or isinstance(amount, bool):
        raise InvalidInput("Please enter a valid quantity")
    if isinstance(amount, str):
        amount = amount.strip()
        if not amount.isdecimal():
            raise InvalidInput("Please enter a valid quantity")
        amount = int(amount)
    if not isinstance(amount, int) or amount <= 0:
        raise InvalidInput("Please enter a valid quantity")
    return amount


def to_inventory_record(row: Dict[str, Any], threshold: int = LOW_STOCK_THRESHOLD) -> Dict[str, Any]:
    variant = row.get("product_variants") or {}
    product = variant.get("products") or {}
    quantity = int(row.get("quantity") or 0)
    reserved = int(row.get("reserved_quantity") or 0)
    available = quantity - reserved
    price = to_float(variant.get("price"))
    return {
        "id": row["id"],
        "variant_id": row.get("variant_id"),
        "sku": variant.get("sku") or "N/A",
        "product_name": product.get("name") or "Unknown Product",
        "category": product.get("category") or "N/A",
        "quantity": quantity,
        "reserved_quantity": reserved,
        "available_stock": available,
        "low_stock_alert": threshold,
        "unit_price": price,
        "total_value": round(quantity * price, 2),
        "status": stock_status(available, threshold),
    }


def filter_inventory(records: List[Dict[str, Any]], status: Optional[str] = None, query: Optional[str] = None) -> List[Dict[str, Any]]:
    query = (query or "").strip().lower()
    filtered = []
    for record in records:
        if status and status != "all" and record["status"] != status:
            continue
        if query and query not in f"{record['product_name']} {record['sku']}".lower():
            continue
        filtered.append(record)
    return filtered


class InventorySynchronizer(ResourceSynchronizer):
    """Inventory rows joined with variant and product, sorted by product name"""

    resource = "inventory"

    def __init__(self, gateway, threshold: int = LOW_STOCK_THRESHOLD):
        super().__init__(gateway)
        self.threshold = threshold

    async def fetch(self, client) -> List[Dict[str, Any]]:
        response = await client.table("inventory")\
            .select(INVENTORY_COLUMNS)\
            .order("id")\
            .execute()
        records = [to_inventory_record(row, self.threshold) for row in response.data or []]
        records.sort(key=lambda record: record["product_name"].lower())
        return records

    def stats(self) -> Dict[str, Any]:
        return summarize_inventory(self.records)

    async def adjust(
        self,
        inventory_id: Any,
        mode: Any,
        amount: Any,
        reason: str = "",
        actor_id: Optional[str] = None,
    ) -> int:
        """Apply an adjustment, write it through, then reload. Returns the written quantity."""
        mode = AdjustMode.parse(mode)
        amount = validate_amount(amount)
        client = await self.client()

        try:
            response = await client.table("inventory")\
                .select("quantity, reserved_quantity")\
                .eq("id", inventory_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            message = f"Error loading item details: {describe(e)}"
            logger.error(message)
            raise FetchFailure(message, cause=e)

        if not response.data:
            raise FetchFailure(f"Inventory item {inventory_id} not found")

        current = response.data[0]
        new_quantity = compute_adjusted_quantity(
            int(current.get("quantity") or 0),
            int(current.get("reserved_quantity") or 0),
            mode,
            amount,
        )

        try:
            await client.table("inventory")\
                .update({"quantity": new_quantity, "updated_at": utcnow_iso()})\
                .eq("id", inventory_id)\
                .execute()
        except Exception as e:
            message = f"Error updating stock: {describe(e)}"
            logger.error(message)
            await self.raise_after_resync(WriteFailure(message, cause=e))

        logger.info(f"📦 Inventory {inventory_id}: {mode.value} {amount} -> {new_quantity}")
        await log_activity(
            client,
            "inventory.updated",
            "inventory",
            inventory_id,
            {"mode": mode.value, "amount": amount, "quantity": new_quantity, "reason": reason},
            actor_id,
        )

        try:
            await self.load()
        except PortalError as e:
            logger.error(f"Reload after stock update failed: {e.message}")
            raise
        return new_quantity
