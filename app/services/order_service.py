# app/services/order_service.py
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import uuid

from sqlalchemy.orm import Session

from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel
from app.domain.errors import NotFoundError, ValidationError
from app.repos.order_repo import OrderRepo
from app.services.notification_service import NotificationService
from app.utils.clock import as_utc
from app.utils.logging import get_logger

logger = get_logger(__name__)

_CENT = Decimal("0.01")


def order_to_dict(order: OrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "items": [
            {
                "product_id": i.product_id,
                "name": i.name,
                "price": i.price,
                "quantity": i.quantity,
                "image_url": i.image_url,
            }
            for i in order.items
        ],
        "total": order.total,
        "customer_name": order.customer_name,
        "email": order.email,
        "phone": order.phone,
        "address": order.address,
        "checkout_session_id": order.checkout_session_id,
        "cart_id": order.cart_id,
        "created_at": as_utc(order.created_at),
    }


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień.
    Zamowienia sa tylko dopisywane, nigdy nie modyfikowane.
    """

    def __init__(self, db: Session, notification_service: NotificationService | None = None):
        self.repo = OrderRepo(db)
        self.notification_service = notification_service or NotificationService()

    def create_order(
        self,
        items: List[Dict[str, Any]],
        customer: Dict[str, str],
        checkout_session_id: Optional[str] = None,
        cart_id: Optional[uuid.UUID] = None,
    ) -> Tuple[Dict[str, Any], bool]:
        """
        Use Case: zapis zamowienia.

        Zwraca (zamowienie, created). created=False gdy dla tej sesji
        platnosci zamowienie juz istnialo (wyscig dwoch complete).
        """
        if not items:
            raise ValidationError("Order must include at least one item")

        order_items = []
        total = Decimal("0.00")
        for item in items:
            quantity = item["quantity"]
            price = Decimal(str(item["price"]))
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise ValidationError("Order item quantity must be at least 1")
            if price < 0:
                raise ValidationError("Order item price must not be negative")

            total += price * quantity
            order_items.append(
                OrderItemModel(
                    product_id=item["product_id"],
                    name=item["name"],
                    price=price,
                    quantity=quantity,
                    image_url=item.get("image_url") or "",
                )
            )

        order = OrderModel(
            total=total.quantize(_CENT),
            customer_name=customer["customer_name"],
            email=customer["email"],
            phone=customer["phone"],
            address=customer["address"],
            checkout_session_id=checkout_session_id,
            cart_id=cart_id,
            items=order_items,
        )

        created = self.repo.create_order(order)
        if created is None:
            existing = self.repo.find_by_checkout_session_id(checkout_session_id)
            logger.info(f"Order for checkout session {checkout_session_id} already exists ({existing.id})")
            return order_to_dict(existing), False

        logger.info(f"Order {created.id} created, total {created.total}, session {checkout_session_id}")

        self._notify(created)

        return order_to_dict(created), True

    def find_by_checkout_session_id(self, session_id: str) -> Dict[str, Any] | None:
        order = self.repo.find_by_checkout_session_id(session_id)
        return order_to_dict(order) if order else None

    def list_orders(self) -> List[Dict[str, Any]]:
        # najnowsze pierwsze
        return [order_to_dict(o) for o in self.repo.list_orders()]

    def get_order(self, order_id: int) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)

        if not order:
            raise NotFoundError("Order not found")

        return order_to_dict(order)

    def _notify(self, order: OrderModel) -> None:
        # zamowienie juz zapisane, brak brokera nie moze tego cofnac
        try:
            self.notification_service.send_order_notification(order.id, order.email, str(order.total))
        except Exception as e:
            logger.warning(f"Failed to enqueue notification for order {order.id}: {e}")
