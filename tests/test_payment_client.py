from types import SimpleNamespace

import pytest
import stripe

from app.domain.errors import NotFoundError, ValidationError
from app.services.payment_client import PaymentClient


class StubSessionApi:
    """Zastepuje stripe.checkout.Session, zapisuje wywolania."""

    def __init__(self, create_errors=(), retrieve_result=None, retrieve_error=None):
        self.create_calls = []
        self.retrieve_calls = []
        self.create_errors = list(create_errors)
        self.retrieve_result = retrieve_result
        self.retrieve_error = retrieve_error

    def create(self, **kwargs):
        self.create_calls.append(kwargs)
        if self.create_errors:
            raise self.create_errors.pop(0)
        return SimpleNamespace(
            id="cs_live_1",
            url="https://checkout.stripe.com/c/pay/cs_live_1",
            payment_status="unpaid",
            metadata=kwargs.get("metadata"),
            customer_email=kwargs.get("customer_email"),
        )

    def retrieve(self, session_id, **kwargs):
        self.retrieve_calls.append((session_id, kwargs))
        if self.retrieve_error:
            raise self.retrieve_error
        return self.retrieve_result


@pytest.fixture()
def stub(monkeypatch):
    api = StubSessionApi()
    monkeypatch.setattr(stripe.checkout, "Session", api)
    return api


def _create(client):
    return client.create_session(
        line_items=[{"quantity": 1, "price_data": {"currency": "usd", "unit_amount": 100, "product_data": {"name": "A"}}}],
        success_url="https://shop.test/ok",
        cancel_url="https://shop.test/cancel",
        metadata={"cartId": "abc"},
        customer_email="a@example.com",
        client_reference_id="abc",
    )


class TestCreateSession:
    def test_passes_payment_params_and_key(self, stub):
        session = _create(PaymentClient(secret_key="sk_test_123"))

        call = stub.create_calls[0]
        assert call["api_key"] == "sk_test_123"
        assert call["mode"] == "payment"
        assert call["metadata"] == {"cartId": "abc"}
        assert call["client_reference_id"] == "abc"
        assert call["customer_email"] == "a@example.com"
        assert call["idempotency_key"]
        assert session.id == "cs_live_1"
        assert session.metadata == {"cartId": "abc"}

    def test_transient_error_retried_with_same_idempotency_key(self, stub):
        stub.create_errors = [stripe.APIConnectionError("network down")]

        session = _create(PaymentClient(secret_key="sk_test_123"))

        assert session.id == "cs_live_1"
        assert len(stub.create_calls) == 2
        assert stub.create_calls[0]["idempotency_key"] == stub.create_calls[1]["idempotency_key"]

    def test_rejected_request_is_validation_error(self, stub):
        stub.create_errors = [stripe.InvalidRequestError("bad currency", param="currency")]

        with pytest.raises(ValidationError, match="Payment provider rejected"):
            _create(PaymentClient(secret_key="sk_test_123"))
        assert len(stub.create_calls) == 1

    def test_not_configured(self, stub):
        with pytest.raises(ValidationError, match="Stripe is not configured"):
            _create(PaymentClient(secret_key=""))
        assert stub.create_calls == []


class TestRetrieveSession:
    def test_maps_provider_session(self, stub):
        stub.retrieve_result = SimpleNamespace(
            id="cs_live_9",
            url=None,
            payment_status="paid",
            metadata={"cartId": "abc", "phone": None},
            customer_email="buyer@example.com",
        )

        session = PaymentClient(secret_key="sk_test_123").retrieve_session("cs_live_9")

        assert stub.retrieve_calls == [("cs_live_9", {"api_key": "sk_test_123"})]
        assert session.payment_status == "paid"
        assert session.metadata == {"cartId": "abc", "phone": ""}
        assert session.customer_email == "buyer@example.com"

    def test_unknown_session(self, stub):
        stub.retrieve_error = stripe.InvalidRequestError("No such checkout.session", param="id")

        with pytest.raises(NotFoundError, match="Checkout session not found"):
            PaymentClient(secret_key="sk_test_123").retrieve_session("cs_nope")
