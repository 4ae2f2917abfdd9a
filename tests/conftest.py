"""Pytest fixtures for the firewood API tests."""

import os

# Settings are read once and cached, so the environment has to be in
# place before anything under firewood is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_USER"] = "admin"
os.environ["ADMIN_PASS"] = "s3cret"
os.environ["ADMIN_NOTIFY_TO"] = "orders@verrington.test"
os.environ["SEND_CUSTOMER_EMAIL"] = "true"
os.environ["APP_BASE_URL"] = "https://verrington.test"
os.environ["MOLLIE_API_KEY"] = "test_dummy"

import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from firewood.core.mollie_client import (
    GatewayPayment,
    PaymentGatewayError,
    get_payment_gateway,
)
from firewood.database import get_session
from firewood.main import app
from firewood.models.product import Product
from firewood.services.notifier import get_notifier

ADMIN_AUTH = ("admin", "s3cret")


class FakeGateway:
    """In-memory stand-in for MollieClient."""

    def __init__(self):
        self.payments: dict[str, GatewayPayment] = {}
        self.created: list[dict] = []
        self.fail = False
        self._ids = itertools.count(1)

    def create_payment(
        self,
        amount_pence,
        currency,
        description,
        redirect_url,
        metadata,
        webhook_url=None,
    ):
        if self.fail:
            raise PaymentGatewayError("Mollie HTTP 503: unavailable")
        payment_id = f"tr_test{next(self._ids)}"
        self.created.append(
            {
                "id": payment_id,
                "amount_pence": amount_pence,
                "currency": currency,
                "description": description,
                "redirect_url": redirect_url,
                "webhook_url": webhook_url,
                "metadata": metadata,
            }
        )
        payment = GatewayPayment(
            id=payment_id,
            status="open",
            checkout_url=f"https://mollie.test/checkout/{payment_id}",
            metadata=dict(metadata),
        )
        self.payments[payment_id] = payment
        return payment

    def get_payment(self, payment_id):
        if self.fail:
            raise PaymentGatewayError("Mollie request failed: timeout")
        if payment_id not in self.payments:
            raise PaymentGatewayError("Mollie HTTP 404: not found")
        return self.payments[payment_id]

    def set_status(self, payment_id, status, metadata=None):
        current = self.payments.get(payment_id)
        self.payments[payment_id] = GatewayPayment(
            id=payment_id,
            status=status,
            checkout_url=current.checkout_url if current else None,
            metadata=metadata if metadata is not None else (current.metadata if current else {}),
        )


class RecordingNotifier:
    """Collects intents instead of sending email."""

    def __init__(self):
        self.intents = []

    def deliver_all(self, intents):
        self.intents.extend(intents)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(engine, gateway, notifier):
    def _get_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def make_product(session):
    def _make(name="Net of Logs", price_pence=2000, is_active=True, sort_order=0):
        product = Product(
            name=name,
            price_pence=price_pence,
            is_active=is_active,
            sort_order=sort_order,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def order_payload(make_product):
    """Factory for a valid order body; creates a product when none is given."""

    def _payload(product=None, quantity=1, **overrides):
        product = product or make_product()
        body = {
            "customer_name": "Jane Doe",
            "customer_phone": "07700 900123",
            "customer_email": "jane@example.com",
            "address_line1": "1 Church Lane",
            "town": "Wincanton",
            "postcode": "ba98bw",
            "payment_method": "BACS",
            "items": [{"product_id": str(product.id), "quantity": quantity}],
        }
        body.update(overrides)
        return body

    return _payload


@pytest.fixture
def place_order(client, order_payload):
    """POST an order and return the response JSON."""

    def _place(**kwargs):
        response = client.post("/api/v1/orders", json=order_payload(**kwargs))
        assert response.status_code == 201, response.text
        return response.json()

    return _place
