# Shared fixtures: settings, an in-memory Supabase, the app and a signed-in client
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from portal.config import SESSION_COOKIE, Settings
from portal.context import AppContext
from portal.factory import create_app
from tests.fakes import FakeSupabase

STAFF_EMAIL = "manager@example.com"
STAFF_PASSWORD = "correct-horse"


def iso(days_ago: float = 0) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days_ago)).isoformat()


def seed_tables():
    customer = {"id": "cust-0001", "email": "jane@example.com", "phone": "555-0100", "created_at": iso(2), "user_id": "user-jane"}
    guest = {"id": "cust-0002", "email": "sam@example.com", "phone": None, "created_at": iso(40), "user_id": None}
    return {
        "orders": [
            {"id": "order-aaaa", "status": "pending", "subtotal": 20, "discount_amount": 0, "tax_amount": 2,
             "total_amount": 22, "created_at": iso(3), "customer_id": customer["id"],
             "customers": {"id": customer["id"], "email": customer["email"]}},
            {"id": "order-bbbb", "status": "paid", "subtotal": 40, "discount_amount": 5, "tax_amount": 3,
             "total_amount": 38, "created_at": iso(2), "customer_id": customer["id"],
             "customers": {"id": customer["id"], "email": customer["email"]}},
            {"id": "order-cccc", "status": "delivered", "subtotal": 15, "discount_amount": 0, "tax_amount": 0,
             "total_amount": 15, "created_at": iso(1), "customer_id": guest["id"],
             "customers": {"id": guest["id"], "email": guest["email"]}},
        ],
        "order_items": [
            {"id": 1, "order_id": "order-aaaa", "quantity": 2, "variant_id": "var-1", "unit_price": 10,
             "product_variants": {"id": "var-1", "sku": "LIP-GLO-0001", "price": 10, "product_id": "prod-1",
                                  "products": {"id": "prod-1", "name": "Glow Gloss", "category": "Lip Gloss"}}},
            {"id": 2, "order_id": "order-bbbb", "quantity": 1, "variant_id": "var-2", "unit_price": 40,
             "product_variants": {"id": "var-2", "sku": "LIP-VEL-0002", "price": 40, "product_id": "prod-2",
                                  "products": {"id": "prod-2", "name": "Velvet Stick", "category": "Lipstick"}}},
            {"id": 3, "order_id": "order-bbbb", "quantity": 3, "variant_id": "var-1", "unit_price": 10,
             "product_variants": {"id": "var-1", "sku": "LIP-GLO-0001", "price": 10, "product_id": "prod-1",
                                  "products": {"id": "prod-1", "name": "Glow Gloss", "category": "Lip Gloss"}}},
        ],
        "inventory": [
            {"id": 11, "variant_id": "var-1", "quantity": 5, "reserved_quantity": 3,
             "product_variants": {"id": "var-1", "sku": "LIP-GLO-0001", "price": 10, "product_id": "prod-1",
                                  "products": {"id": "prod-1", "name": "Glow Gloss", "category": "Lip Gloss"}}},
            {"id": 12, "variant_id": "var-2", "quantity": 50, "reserved_quantity": 0,
             "product_variants": {"id": "var-2", "sku": "LIP-VEL-0002", "price": 40, "product_id": "prod-2",
                                  "products": {"id": "prod-2", "name": "Velvet Stick", "category": "Lipstick"}}},
        ],
        "products": [
            {"id": "prod-1", "name": "Glow Gloss", "description": "", "category": "Lip Gloss",
             "is_active": True, "deleted_at": None, "created_at": iso(30)},
            {"id": "prod-2", "name": "Velvet Stick", "description": "", "category": "Lipstick",
             "is_active": True, "deleted_at": None, "created_at": iso(20)},
        ],
        "product_variants": [
            {"id": "var-1", "product_id": "prod-1", "sku": "LIP-GLO-0001", "price": 10,
             "inventory": [{"quantity": 5, "reserved_quantity": 3}]},
            {"id": "var-2", "product_id": "prod-2", "sku": "LIP-VEL-0002", "price": 40,
             "inventory": [{"quantity": 50, "reserved_quantity": 0}]},
        ],
        "customers": [customer, guest],
        "profiles": [
            {"id": "user-jane", "full_name": "Jane Doe", "role": "customer"},
            {"id": "user-staff", "full_name": "Morgan Lee", "role": "store_manager"},
        ],
        "activity_logs": [],
        "site_settings": [],
    }


@pytest.fixture
def fake():
    db = FakeSupabase(seed_tables())
    db.auth.add_user(STAFF_EMAIL, STAFF_PASSWORD, user_id="user-staff")
    return db


@pytest.fixture
def settings():
    return Settings(
        supabase_url="https://project.supabase.co",
        supabase_key="service-role-key",
        secret_key="test-secret",
        session_expiry_days=7,
        profile_snapshot_ttl=300,
        secure_cookies=False,
        debug=False,
        log_level="WARNING",
    )


@pytest.fixture
def factory(fake):
    async def build(url, key):
        return fake
    return build


@pytest.fixture
def auth_factory(fake):
    def build(url, key):
        return fake.auth_client
    return build


@pytest.fixture
def context(settings, factory, auth_factory):
    return AppContext(settings, factory, auth_factory)


@pytest.fixture
def app(settings, factory, auth_factory):
    return create_app(settings, gateway_factory=factory, auth_factory=auth_factory)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def sign_in(client, email=STAFF_EMAIL, password=STAFF_PASSWORD, redirect="/"):
    return client.post(
        "/login",
        data={"email": email, "password": password, "redirect": redirect},
        follow_redirects=False,
    )


@pytest.fixture
def signed_in(client):
    response = sign_in(client)
    assert response.status_code == 303
    assert SESSION_COOKIE in client.cookies
    return client
