import os
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# konfiguracja musi byc ustawiona zanim cokolwiek zaimportuje app.utils.settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["CART_SWEEP_IN_PROCESS"] = "false"
os.environ["CART_IDLE_MINUTES"] = "15"
os.environ["ADMIN_TOKEN"] = "test-admin"

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_payment_client
from app.data import models  # noqa: F401
from app.data.database import Base, SessionLocal, engine
from app.data.models.product import ProductModel
from app.domain.errors import NotFoundError
from app.main import create_app
from app.services.cart_service import CartService
from app.services.payment_client import CheckoutSession
from app.services.stock_ledger import StockLedger



class FakeClock:
    """Sterowany zegar: testy wygasania bez sleep."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakePaymentClient:
    """Stripe w pamieci, ten sam interfejs co PaymentClient."""

    def __init__(self):
        self.sessions = {}
        self.created = []

    def create_session(
        self,
        line_items,
        success_url,
        cancel_url,
        metadata,
        customer_email=None,
        client_reference_id=None,
    ):
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.created.append(
            {
                "id": session_id,
                "line_items": line_items,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": dict(metadata),
                "customer_email": customer_email,
                "client_reference_id": client_reference_id,
            }
        )
        session = CheckoutSession(
            id=session_id,
            url=f"https://checkout.stripe.test/{session_id}",
            payment_status="unpaid",
            metadata=dict(metadata),
            customer_email=customer_email,
        )
        self.sessions[session_id] = session
        return session

    def retrieve_session(self, session_id):
        if session_id not in self.sessions:
            raise NotFoundError("Checkout session not found")
        return self.sessions[session_id]

    def mark_paid(self, session_id):
        self.sessions[session_id] = replace(self.sessions[session_id], payment_status="paid")

    def add_paid_session(self, session_id, metadata, customer_email=None):
        self.sessions[session_id] = CheckoutSession(
            id=session_id,
            url=None,
            payment_status="paid",
            metadata=dict(metadata),
            customer_email=customer_email,
        )


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def cart_service(db, clock):
    return CartService(db, cart_ttl_seconds=15 * 60, clock=clock)


@pytest.fixture()
def payments():
    return FakePaymentClient()


@pytest.fixture()
def make_product(db):
    def _make(name="Notebook", price="10.00", stock=10, category="school", images=None, description=""):
        product = ProductModel(
            name=name,
            price=Decimal(str(price)),
            stock=stock,
            category=category,
            images=images if images is not None else [],
            description=description,
        )
        db.add(product)
        db.commit()
        product_id = product.id
        db.rollback()
        return product_id

    return _make


@pytest.fixture()
def stock_of(db):
    ledger = StockLedger(db)

    def _stock(product_id):
        return ledger.available(product_id)

    return _stock


@pytest.fixture()
def client(payments):
    app = create_app(sweep_in_process=False)
    app.dependency_overrides[get_payment_client] = lambda: payments
    return TestClient(app)
