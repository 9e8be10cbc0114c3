from decimal import Decimal

import pytest

from app.domain.errors import NotFoundError, ValidationError
from app.services.checkout_service import CheckoutService, _first_http_image, _to_minor_units
from app.services.order_service import OrderService


class SilentNotifications:
    def send_order_notification(self, order_id, email, total=""):
        pass


@pytest.fixture()
def order_service(db):
    return OrderService(db, notification_service=SilentNotifications())


@pytest.fixture()
def checkout(db, payments, cart_service, order_service):
    return CheckoutService(
        db,
        payment_client=payments,
        cart_service=cart_service,
        order_service=order_service,
        currency="usd",
        success_url="https://shop.test/success",
        cancel_url="https://shop.test/cancel",
    )


@pytest.fixture()
def filled_cart(cart_service, make_product):
    notebook = make_product(
        name="Notebook",
        price="4.99",
        stock=10,
        description="A5, 60 pages",
        images=["/static/notebook.png", "https://cdn.test/notebook.png"],
    )
    pen = make_product(name="Pen", price="1.20", stock=10)
    cart_id = cart_service.create_cart()["cart_id"]
    cart_service.add_item(cart_id, notebook, 2)
    cart_service.add_item(cart_id, pen, 3)
    return {"cart_id": cart_id, "notebook": notebook, "pen": pen}


def _begin(checkout, cart_id, **overrides):
    params = {
        "customer_name": "Jan Nowak",
        "customer_email": "jan@example.com",
        "phone": "123",
        "address": "Main St 5",
    }
    params.update(overrides)
    return checkout.begin_checkout(cart_id, **params)


class TestHelpers:
    @pytest.mark.parametrize(
        "price, expected",
        [(Decimal("4.99"), 499), (Decimal("0.005"), 1), ("12", 1200), (0, 0)],
    )
    def test_minor_units(self, price, expected):
        assert _to_minor_units(price) == expected

    def test_minor_units_rejects_garbage(self):
        with pytest.raises(ValidationError, match="Invalid product price"):
            _to_minor_units("free")

    def test_first_http_image(self):
        assert _first_http_image(["/local.png", "HTTPS://cdn/a.png", "http://b"]) == "HTTPS://cdn/a.png"
        assert _first_http_image(["/local.png"]) is None
        assert _first_http_image(None) is None


class TestBeginCheckout:
    def test_creates_session_with_cart_metadata(self, checkout, payments, filled_cart):
        session = _begin(checkout, filled_cart["cart_id"])

        assert session["id"] == "cs_test_1"
        assert session["url"].startswith("https://")

        created = payments.created[0]
        assert created["metadata"] == {
            "cartId": str(filled_cart["cart_id"]),
            "customerName": "Jan Nowak",
            "email": "jan@example.com",
            "phone": "123",
            "address": "Main St 5",
        }
        assert created["customer_email"] == "jan@example.com"
        assert created["success_url"] == "https://shop.test/success"

    def test_line_items_in_minor_units(self, checkout, payments, filled_cart):
        _begin(checkout, filled_cart["cart_id"])

        notebook, pen = payments.created[0]["line_items"]
        assert notebook["quantity"] == 2
        assert notebook["price_data"]["unit_amount"] == 499
        assert notebook["price_data"]["currency"] == "usd"
        assert notebook["price_data"]["product_data"] == {
            "name": "Notebook",
            "description": "A5, 60 pages",
            "images": ["https://cdn.test/notebook.png"],
        }
        assert pen["price_data"]["unit_amount"] == 120
        assert pen["price_data"]["product_data"] == {"name": "Pen"}

    def test_does_not_extend_cart(self, checkout, cart_service, filled_cart, clock):
        before = cart_service.get_snapshot(filled_cart["cart_id"])["expires_at"]
        clock.advance(minutes=5)

        _begin(checkout, filled_cart["cart_id"])

        assert cart_service.get_snapshot(filled_cart["cart_id"])["expires_at"] == before

    def test_request_urls_override_defaults(self, checkout, payments, filled_cart):
        checkout.begin_checkout(
            filled_cart["cart_id"],
            success_url="https://other.test/ok",
            cancel_url="https://other.test/no",
        )

        assert payments.created[0]["success_url"] == "https://other.test/ok"
        assert payments.created[0]["cancel_url"] == "https://other.test/no"
        assert payments.created[0]["customer_email"] is None

    def test_empty_cart(self, checkout, cart_service):
        cart_id = cart_service.create_cart()["cart_id"]

        with pytest.raises(ValidationError, match="Cart is empty"):
            _begin(checkout, cart_id)

    def test_missing_cart_id(self, checkout):
        with pytest.raises(ValidationError, match="Cart id is required"):
            _begin(checkout, None)

    def test_missing_urls(self, db, payments, cart_service, order_service, filled_cart):
        service = CheckoutService(
            db,
            payment_client=payments,
            cart_service=cart_service,
            order_service=order_service,
            success_url="",
            cancel_url="",
        )

        with pytest.raises(ValidationError, match="Success and cancel URLs are required"):
            _begin(service, filled_cart["cart_id"])

    def test_zero_price_product_rejected(self, checkout, cart_service, make_product, payments):
        freebie = make_product(name="Sticker", price="0.00", stock=5)
        cart_id = cart_service.create_cart()["cart_id"]
        cart_service.add_item(cart_id, freebie, 1)

        with pytest.raises(ValidationError, match="Invalid product price"):
            _begin(checkout, cart_id)
        assert payments.created == []

    def test_expired_cart(self, checkout, filled_cart, clock):
        clock.advance(minutes=16)

        with pytest.raises(NotFoundError, match="Cart expired"):
            _begin(checkout, filled_cart["cart_id"])


class TestCompleteCheckout:
    def test_paid_session_creates_order_and_consumes_cart(
        self, checkout, payments, cart_service, order_service, filled_cart, stock_of
    ):
        session = _begin(checkout, filled_cart["cart_id"])
        payments.mark_paid(session["id"])

        result = checkout.complete_checkout(session["id"])

        assert result["status"] == "created"
        order = order_service.get_order(result["order_id"])
        assert order["total"] == Decimal("13.58")
        assert order["customer_name"] == "Jan Nowak"
        assert order["checkout_session_id"] == session["id"]
        assert order["cart_id"] == filled_cart["cart_id"]
        assert {i["name"]: i["quantity"] for i in order["items"]} == {"Notebook": 2, "Pen": 3}
        assert order["items"][0]["image_url"] == "/static/notebook.png"

        with pytest.raises(NotFoundError):
            cart_service.get_snapshot(filled_cart["cart_id"])
        assert stock_of(filled_cart["notebook"]) == 8
        assert stock_of(filled_cart["pen"]) == 7

    def test_completing_twice_returns_same_order(self, checkout, payments, order_service, filled_cart):
        session = _begin(checkout, filled_cart["cart_id"])
        payments.mark_paid(session["id"])

        first = checkout.complete_checkout(session["id"])
        second = checkout.complete_checkout(session["id"])

        assert second == {"order_id": first["order_id"], "status": "existing"}
        assert len(order_service.list_orders()) == 1

    def test_unpaid_session(self, checkout, payments, filled_cart, order_service):
        session = _begin(checkout, filled_cart["cart_id"])

        with pytest.raises(ValidationError, match="Payment not completed"):
            checkout.complete_checkout(session["id"])
        assert order_service.list_orders() == []

    def test_missing_cart_reference(self, checkout, payments):
        payments.add_paid_session("cs_orphan", {"email": "x@example.com"})

        with pytest.raises(ValidationError, match="Missing cart reference"):
            checkout.complete_checkout("cs_orphan")

    def test_cart_expired_before_completion(
        self, checkout, payments, order_service, filled_cart, clock, stock_of, caplog
    ):
        session = _begin(checkout, filled_cart["cart_id"])
        payments.mark_paid(session["id"])
        clock.advance(minutes=16)

        with caplog.at_level("ERROR", logger="app"):
            with pytest.raises(NotFoundError, match="Cart expired"):
                checkout.complete_checkout(session["id"])

        assert order_service.list_orders() == []
        assert stock_of(filled_cart["notebook"]) == 10
        assert "no order created" in caplog.text

    def test_customer_defaults_from_session(self, checkout, payments, filled_cart, order_service):
        payments.add_paid_session(
            "cs_minimal",
            {"cartId": str(filled_cart["cart_id"])},
            customer_email="stripe@example.com",
        )

        result = checkout.complete_checkout("cs_minimal")

        order = order_service.get_order(result["order_id"])
        assert order["email"] == "stripe@example.com"
        assert order["customer_name"] == "Stripe customer"
        assert order["phone"] == "n/a"
        assert order["address"] == "n/a"

    def test_missing_email(self, checkout, payments, filled_cart, order_service):
        payments.add_paid_session("cs_noemail", {"cartId": str(filled_cart["cart_id"])})

        with pytest.raises(ValidationError, match="Missing customer email"):
            checkout.complete_checkout("cs_noemail")
        assert order_service.list_orders() == []

    def test_unknown_session(self, checkout):
        with pytest.raises(NotFoundError, match="Checkout session not found"):
            checkout.complete_checkout("cs_missing")

    def test_line_removed_while_order_is_written_is_logged(
        self, checkout, payments, cart_service, order_service, filled_cart, stock_of, caplog, monkeypatch
    ):
        session = _begin(checkout, filled_cart["cart_id"])
        payments.mark_paid(session["id"])
        create_order = order_service.create_order

        def create_then_remove(*args, **kwargs):
            result = create_order(*args, **kwargs)
            cart_service.remove_item(filled_cart["cart_id"], filled_cart["pen"])
            return result

        monkeypatch.setattr(order_service, "create_order", create_then_remove)

        with caplog.at_level("ERROR", logger="app"):
            result = checkout.complete_checkout(session["id"])

        assert result["status"] == "created"
        order = order_service.get_order(result["order_id"])
        assert {i["name"]: i["quantity"] for i in order["items"]} == {"Notebook": 2, "Pen": 3}
        assert stock_of(filled_cart["pen"]) == 10
        assert "3 units may be oversold" in caplog.text
