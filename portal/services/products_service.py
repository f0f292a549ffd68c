"""
Products service: catalogue listing and product writes
"""
import logging
import random
from typing import Any, Dict, List, Optional

from portal.errors import InvalidInput, WriteFailure, describe
from portal.services.activity_service import log_activity
from portal.services.stats import summarize_products
from portal.services.sync import ResourceSynchronizer, gather_all, utcnow_iso
from portal.utils.formatting import to_float

logger = logging.getLogger(__name__)

VARIANT_COLUMNS = """
    id,
    sku,
    price,
    inventory (quantity, reserved_quantity)
"""


def generate_sku(name: str, category: str, number: Optional[int] = None) -> str:
    """CAT-PRO-0042 style SKU"""
    category_code = category[:3].upper().replace(" ", "")
    product_code = name[:3].upper().replace(" ", "")
    if number is None:
        number = random.randint(0, 9999)
    return f"{category_code}-{product_code}-{number:04d}"


def _variant_stock(variant: Dict[str, Any]) -> int:
    inventory = variant.get("inventory")
    if isinstance(inventory, list):
        inventory = inventory[0] if inventory else None
    return int((inventory or {}).get("quantity") or 0)


def to_product_record(product: Dict[str, Any], variants: List[Dict[str, Any]]) -> Dict[str, Any]:
    first = variants[0] if variants else {}
    return {
        "id": product["id"],
        "name": product.get("name") or "",
        "description": product.get("description") or "",
        "category": product.get("category") or "",
        "is_active": bool(product.get("is_active")),
        "created_at": product.get("created_at"),
        "variant_id": first.get("id"),
        "sku": first.get("sku") or "N/A",
        "price": to_float(first.get("price")),
        "stock": sum(_variant_stock(variant) for variant in variants),
    }


def parse_product_form(form: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and coerce the product form"""
    name = (form.get("name") or "").strip()
    category = (form.get("category") or "").strip()
    try:
        price = float(form.get("price") or 0)
    except (TypeError, ValueError):
        price = 0.0
    try:
        stock = int(form.get("stock") or 0)
    except (TypeError, ValueError):
        stock = 0

    if not name or not category or price <= 0:
        raise InvalidInput("Please fill in all required fields correctly")

    return {
        "name": name,
        "description": (form.get("description") or "").strip(),
        "category": category,
        "price": price,
        "stock": max(stock, 0),
        "is_active": (form.get("status") or "active") == "active",
    }


class ProductsSynchronizer(ResourceSynchronizer):
    """Active, non-deleted products with their first variant and total stock"""

    resource = "products"

    async def _variants(self, client, product_id: Any) -> List[Dict[str, Any]]:
        response = await client.table("product_variants")\
            .select(VARIANT_COLUMNS)\
            .eq("product_id", product_id)\
            .execute()
        return response.data or []

    async def fetch(self, client) -> List[Dict[str, Any]]:
        response = await client.table("products")\
            .select("*")\
            .eq("is_active", True)\
            .is_("deleted_at", "null")\
            .order("created_at", desc=True)\
            .execute()
        products = response.data or []

        variants = await gather_all(self._variants(client, product["id"]) for product in products)
        return [to_product_record(product, found) for product, found in zip(products, variants)]

    def stats(self) -> Dict[str, Any]:
        return summarize_products(self.records)

    async def create(self, form: Dict[str, Any], actor_id: Optional[str] = None) -> Dict[str, Any]:
        data = parse_product_form(form)
        client = await self.client()

        try:
            product_response = await client.table("products").insert({
                "name": data["name"],
                "description": data["description"],
                "category": data["category"],
                "is_active": data["is_active"],
            }).execute()
            product = product_response.data[0]

            variant_response = await client.table("product_variants").insert({
                "product_id": product["id"],
                "sku": generate_sku(data["name"], data["category"]),
                "price": data["price"],
            }).execute()
            variant = variant_response.data[0]
        except Exception as e:
            message = f"Error saving product: {describe(e)}"
            logger.error(message)
            await self.raise_after_resync(WriteFailure(message, cause=e))

        # A database trigger normally creates the inventory row already
        try:
            await client.table("inventory").upsert(
                {"variant_id": variant["id"], "quantity": data["stock"], "reserved_quantity": 0},
                on_conflict="variant_id",
            ).execute()
        except Exception as e:
            logger.warning(f"Inventory update warning for variant {variant['id']}: {e}")

        await log_activity(client, "product.created", "products", product["id"], {"name": data["name"]}, actor_id)
        await self.load()
        return product

    async def update(self, product_id: Any, form: Dict[str, Any], actor_id: Optional[str] = None):
        data = parse_product_form(form)
        client = await self.client()

        try:
            await client.table("products").update({
                "name": data["name"],
                "description": data["description"],
                "category": data["category"],
                "is_active": data["is_active"],
            }).eq("id", product_id).execute()

            variants = await client.table("product_variants")\
                .select("id")\
                .eq("product_id", product_id)\
                .limit(1)\
                .execute()
            if variants.data:
                await client.table("product_variants")\
                    .update({"price": data["price"]})\
                    .eq("id", variants.data[0]["id"])\
                    .execute()
        except Exception as e:
            message = f"Error updating product: {describe(e)}"
            logger.error(message)
            await self.raise_after_resync(WriteFailure(message, cause=e))

        await log_activity(client, "product.updated", "products", product_id, {"name": data["name"]}, actor_id)
        await self.load()

    async def delete(self, product_id: Any, actor_id: Optional[str] = None):
        """Soft delete: hide the product without dropping its history"""
        client = await self.client()
        try:
            await client.table("products")\
                .update({"deleted_at": utcnow_iso(), "is_active": False})\
                .eq("id", product_id)\
                .execute()
        except Exception as e:
            message = f"Error deleting product: {describe(e)}"
            logger.error(message)
            await self.raise_after_resync(WriteFailure(message, cause=e))

        await log_activity(client, "product.deleted", "products", product_id, None, actor_id)
        await self.load()
