# app/services/checkout_service.py
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.domain.errors import NotFoundError, ValidationError
from app.services.cart_service import CartService
from app.services.order_service import OrderService
from app.services.payment_client import CheckoutSession, PaymentClient
from app.utils.logging import get_logger
from app.utils.settings import STRIPE_CANCEL_URL, STRIPE_CURRENCY, STRIPE_SUCCESS_URL

logger = get_logger(__name__)

_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)


def _to_minor_units(price: Any) -> int:
    try:
        amount = (Decimal(str(price)) * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError("Invalid product price")
    return int(amount)


def _first_http_image(images: List[str] | None) -> str | None:
    for image in images or []:
        if isinstance(image, str) and _HTTP_URL.match(image):
            return image
    return None


class CheckoutService:
    """
    Most miedzy koszykiem a Stripe Checkout.

    begin: snapshot koszyka -> sesja platnosci (cartId w metadata)
    complete: sesja oplacona -> zamowienie (raz na sesje) -> finalizacja koszyka
    """

    def __init__(
        self,
        db: Session,
        payment_client: PaymentClient | None = None,
        cart_service: CartService | None = None,
        order_service: OrderService | None = None,
        currency: str = STRIPE_CURRENCY,
        success_url: str = STRIPE_SUCCESS_URL,
        cancel_url: str = STRIPE_CANCEL_URL,
    ):
        self.carts = cart_service or CartService(db)
        self.orders = order_service or OrderService(db)
        self.payments = payment_client or PaymentClient()
        self.currency = currency
        self.default_success_url = success_url
        self.default_cancel_url = cancel_url

    def begin_checkout(
        self,
        cart_id,
        success_url: str | None = None,
        cancel_url: str | None = None,
        customer_name: str | None = None,
        customer_email: str | None = None,
        phone: str | None = None,
        address: str | None = None,
    ) -> Dict[str, Any]:
        if not cart_id:
            raise ValidationError("Cart id is required")

        success_url = success_url or self.default_success_url
        cancel_url = cancel_url or self.default_cancel_url
        if not success_url or not cancel_url:
            raise ValidationError("Success and cancel URLs are required for checkout")

        # snapshot, nie touch: sesja platnosci nie przedluza koszyka
        cart = self.carts.get_snapshot(cart_id)
        if not cart["items"]:
            raise ValidationError("Cart is empty")

        line_items = [self._line_item(item) for item in cart["items"]]

        session = self.payments.create_session(
            line_items=line_items,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata={
                "cartId": str(cart["cart_id"]),
                "customerName": customer_name or "",
                "email": customer_email or "",
                "phone": phone or "",
                "address": address or "",
            },
            customer_email=customer_email or None,
            client_reference_id=str(cart["cart_id"]),
        )

        logger.info(f"Checkout session {session.id} started for cart {cart['cart_id']}")
        return {"id": session.id, "url": session.url}

    def complete_checkout(self, session_id: str) -> Dict[str, Any]:
        if not session_id:
            raise ValidationError("Session id is required")

        session = self.payments.retrieve_session(session_id)

        if session.payment_status != "paid":
            raise ValidationError("Payment not completed")

        cart_id = (session.metadata.get("cartId") or "").strip()
        if not cart_id:
            raise ValidationError("Missing cart reference")

        # powtorka (webhook retry, polling klienta) -> to samo zamowienie
        existing = self.orders.find_by_checkout_session_id(session.id)
        if existing:
            return {"order_id": existing["id"], "status": "existing"}

        try:
            cart = self.carts.get_snapshot(cart_id)
        except NotFoundError as e:
            # oplacone, ale koszyk juz wygasl i towar wrocil na stan
            logger.error(
                f"Paid checkout session {session.id} references cart {cart_id} that is gone ({e}); "
                f"no order created"
            )
            raise

        if not cart["items"]:
            raise ValidationError("Cart is empty")

        items = [self._order_item(item, session) for item in cart["items"]]
        customer = self._customer(session)

        order, created = self.orders.create_order(
            items,
            customer,
            checkout_session_id=session.id,
            cart_id=cart["cart_id"],
        )
        if not created:
            # rownolegly complete byl pierwszy, on finalizuje koszyk
            return {"order_id": order["id"], "status": "existing"}

        ordered = {item["product_id"]: item["quantity"] for item in cart["items"]}
        try:
            self.carts.finalize_cart(cart["cart_id"], ordered_lines=ordered)
        except NotFoundError as e:
            logger.error(
                f"Order {order['id']} recorded for session {session.id}, but cart {cart_id} "
                f"expired before finalization ({e}); its stock was released"
            )

        return {"order_id": order["id"], "status": "created"}

    def _line_item(self, item: Dict[str, Any]) -> Dict[str, Any]:
        product = item["product"]
        if not product or not product.get("name"):
            raise ValidationError("Product not found")

        unit_amount = _to_minor_units(product["price"])
        if unit_amount < 1:
            raise ValidationError("Invalid product price")

        product_data: Dict[str, Any] = {"name": product["name"]}
        if product.get("description"):
            product_data["description"] = product["description"]
        image = _first_http_image(product.get("images"))
        if image:
            product_data["images"] = [image]

        return {
            "quantity": item["quantity"],
            "price_data": {
                "currency": self.currency,
                "unit_amount": unit_amount,
                "product_data": product_data,
            },
        }

    def _order_item(self, item: Dict[str, Any], session: CheckoutSession) -> Dict[str, Any]:
        product = item["product"]
        if not product:
            logger.error(f"Product {item['product_id']} vanished before session {session.id} completed")
            raise ValidationError("Product not found")

        images = product.get("images") or []
        return {
            "product_id": product["id"],
            "name": product["name"],
            "price": product["price"],
            "quantity": item["quantity"],
            "image_url": images[0] if images else "",
        }

    @staticmethod
    def _customer(session: CheckoutSession) -> Dict[str, str]:
        metadata = session.metadata
        email = (metadata.get("email") or "").strip() or (session.customer_email or "").strip()
        if not email:
            raise ValidationError("Missing customer email")

        return {
            "customer_name": (metadata.get("customerName") or "").strip() or "Stripe customer",
            "email": email,
            "phone": (metadata.get("phone") or "").strip() or "n/a",
            "address": (metadata.get("address") or "").strip() or "n/a",
        }
