"""Shared fixtures: in-memory database, API client, users, products."""
import base64
import json
import os

# Settings are read at import time, so the environment comes first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_stripe_test_secret")
os.environ.setdefault("IDENTITY_WEBHOOK_SECRET", "whsec_" + base64.b64encode(b"identity-test-secret").decode())

from decimal import Decimal

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings
from database import Base, get_db
from main import app
from models.category import Category
from models.product import Product
from models.users import User
from utils.payment_client import get_payment_client
from utils.signatures import sign_stripe_payload
from utils.tokenJWT import create_access_token


class FakePaymentClient:
    """Stands in for the processor; records every intent request."""

    def __init__(self):
        self.calls = []
        self.fail = False

    async def create_payment_intent(self, amount, metadata, idempotency_key=None):
        if self.fail:
            raise httpx.ConnectError("processor unreachable")
        n = len(self.calls) + 1
        self.calls.append({"amount": amount, "metadata": dict(metadata), "idempotency_key": idempotency_key})
        return {"id": f"pi_test_{n}", "client_secret": f"pi_test_{n}_secret_abc", "object": "payment_intent"}


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def payments():
    return FakePaymentClient()


@pytest.fixture()
def client(session_factory, payments):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_client] = lambda: payments
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def users(db):
    alice = User(id="user_alice", email="alice@example.com", full_name="Alice Buyer", role="user", is_verified=True)
    bob = User(id="user_bob", email="bob@example.com", full_name="Bob Buyer", role="user", is_verified=True)
    admin = User(id="user_admin", email="admin@example.com", full_name="Store Admin", role="admin", is_verified=True)
    db.add_all([alice, bob, admin])
    db.commit()
    return {"alice": alice.id, "bob": bob.id, "admin": admin.id}


@pytest.fixture()
def products(db, users):
    category = Category(name="Coffee Gear", slug="coffee-gear")
    db.add(category)
    db.flush()
    rows = {
        "mug": Product(title="Mug", slug="mug", price=Decimal("10.00"), stock=5,
                       category_id=category.id, created_by=users["admin"]),
        "filters": Product(title="Filters", slug="filters", price=Decimal("5.50"), stock=10,
                           category_id=category.id, created_by=users["admin"]),
        "retired": Product(title="Retired Grinder", slug="retired-grinder", price=Decimal("99.00"), stock=3,
                           is_active=False, category_id=category.id, created_by=users["admin"]),
    }
    db.add_all(rows.values())
    db.commit()
    return {name: p.id for name, p in rows.items()}


def auth(user_id):
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


ADDRESS = {
    "line1": "1 Market Street",
    "city": "Springfield",
    "state": "IL",
    "postalCode": "62701",
    "country": "US",
}


def add_to_cart(client, user_id, product_id, quantity=1):
    return client.post("/cart/items", json={"productId": product_id, "quantity": quantity}, headers=auth(user_id))


def checkout(client, user_id, address=None):
    return client.post("/checkout", json={"shippingAddress": address or ADDRESS}, headers=auth(user_id))


def payment_event(event_type, reference, order_id=None, user_id=None, event_id="evt_1"):
    metadata = {}
    if order_id is not None:
        metadata["orderId"] = str(order_id)
    if user_id is not None:
        metadata["userId"] = user_id
    return {
        "id": event_id,
        "type": event_type,
        "data": {"object": {"id": reference, "object": "payment_intent", "metadata": metadata}},
    }


def post_stripe_event(client, event, secret=None, timestamp=None):
    body = json.dumps(event).encode("utf-8")
    header = sign_stripe_payload(body, secret or settings.STRIPE_WEBHOOK_SECRET, timestamp=timestamp)
    return client.post(
        "/webhooks/stripe",
        content=body,
        headers={"Stripe-Signature": header, "Content-Type": "application/json"},
    )
