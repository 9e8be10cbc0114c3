import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from app.domain.cart import CartState
from app.domain.errors import ConflictError, NotFoundError, ValidationError
from app.repos.cart_repo import CartRepo
from app.repos.product_repo import ProductRepo
from app.services.product_service import product_to_dict
from app.services.reservation import StockAdjustment, compensating
from app.services.stock_ledger import StockLedger
from app.utils.clock import utcnow
from app.utils.logging import get_logger
from app.utils.retry import db_retry
from app.utils.settings import CART_TTL_SECONDS

logger = get_logger(__name__)


def _normalize_quantity(value: Any, minimum: int) -> int:
    if isinstance(value, bool):
        value = None
    elif isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())

    if not isinstance(value, int) or value < minimum:
        if minimum >= 1:
            raise ValidationError("Quantity must be at least 1")
        raise ValidationError("Quantity must be 0 or higher")
    return value


def _normalize_product_id(value: Any) -> int:
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError("Invalid product id")
    return value


def _normalize_cart_id(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        raise ValidationError("Invalid cart id")


@db_retry()
def _release_with_retry(ledger: StockLedger, product_id: int, quantity: int) -> None:
    ledger.release(product_id, quantity)


class CartService:
    """
    Koordynator rezerwacji: kazda komenda na koszyku to
    (a) korekta stanu w StockLedger, (b) warunkowy zapis koszyka,
    a przy bledzie (b) dokladna odwrotnosc (a).

    query: get_cart (odswieza TTL), get_snapshot (bez odswiezania)
    commands: create, add, update, remove, clear, finalize, expire, cleanup
    """

    def __init__(
        self,
        db: Session,
        cart_ttl_seconds: int = CART_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.ledger = StockLedger(db)
        self.cart_ttl = timedelta(seconds=cart_ttl_seconds)
        self.clock = clock

    #query - odczyt
    def get_cart(self, cart_id) -> Dict[str, Any]:
        """Odczyt, ktory przedluza waznosc koszyka (touch)."""
        cart_id = _normalize_cart_id(cart_id)
        state = self._get_active_cart(cart_id)
        state = self.repo.save_cart(state, state.lines, self._new_expiry())
        return self._to_view(state)

    def get_snapshot(self, cart_id) -> Dict[str, Any]:
        """
        Odczyt bez przedluzania TTL, uzywany przez checkout:
        sesja platnosci w toku nie moze po cichu wydluzac zycia koszyka.
        """
        cart_id = _normalize_cart_id(cart_id)
        return self._to_view(self._get_active_cart(cart_id))

    #commands
    def create_cart(self) -> Dict[str, Any]:
        state = self.repo.create_cart(self._new_expiry())
        logger.info(f"Created cart {state.id}, expires at {state.expires_at.isoformat()}")
        return self._to_view(state)

    def add_item(self, cart_id, product_id, quantity) -> Dict[str, Any]:
        # walidacja zanim cokolwiek ruszymy w magazynie
        quantity = _normalize_quantity(quantity, minimum=1)
        product_id = _normalize_product_id(product_id)
        cart_id = _normalize_cart_id(cart_id)

        state = self._get_active_cart(cart_id)
        new_quantity = state.quantity_of(product_id) + quantity
        lines = state.with_quantity(product_id, new_quantity)

        with compensating(self.ledger, StockAdjustment.reserve(product_id, quantity)):
            state = self.repo.save_cart(state, lines, self._new_expiry())

        logger.info(f"Cart {cart_id}: product {product_id} quantity now {new_quantity}")
        return self._to_view(state)

    def update_item(self, cart_id, product_id, quantity) -> Dict[str, Any]:
        quantity = _normalize_quantity(quantity, minimum=0)
        product_id = _normalize_product_id(product_id)
        cart_id = _normalize_cart_id(cart_id)

        state = self._get_active_cart(cart_id)
        if not state.has_line(product_id):
            raise NotFoundError("Cart item not found")

        if quantity == 0:
            return self._remove_line(state, product_id)

        delta = quantity - state.quantity_of(product_id)
        lines = state.with_quantity(product_id, quantity)

        with compensating(self.ledger, StockAdjustment(product_id, delta)):
            state = self.repo.save_cart(state, lines, self._new_expiry())

        logger.info(f"Cart {cart_id}: product {product_id} quantity set to {quantity} (delta {delta})")
        return self._to_view(state)

    def remove_item(self, cart_id, product_id) -> Dict[str, Any]:
        product_id = _normalize_product_id(product_id)
        cart_id = _normalize_cart_id(cart_id)

        state = self._get_active_cart(cart_id)
        if not state.has_line(product_id):
            raise NotFoundError("Cart item not found")

        return self._remove_line(state, product_id)

    def clear_cart(self, cart_id) -> Dict[str, bool]:
        cart_id = _normalize_cart_id(cart_id)
        state = self._get_active_cart(cart_id)

        # najpierw warunkowy delete, zwalnia tylko ten, kto faktycznie usunal
        if not self.repo.delete_cart(state):
            if self.repo.exists(cart_id):
                raise ConflictError("Cart was modified by another operation")
            raise NotFoundError("Cart not found")

        self._release_lines(state)
        logger.info(f"Cart {cart_id} cleared, released {state.reserved_quantity} units")
        return {"deleted": True}

    def finalize_cart(self, cart_id, ordered_lines: Optional[Dict[int, int]] = None) -> Dict[str, bool]:
        """
        Koszyk zamieniony w zamowienie: usuwamy go BEZ zwalniania stanu,
        towar zostal sprzedany.

        `ordered_lines` to pozycje z zamowienia ({product_id: ilosc}); jesli koszyk
        zmienil sie od snapshotu checkoutu, rozjazd trafia do logu.
        """
        cart_id = _normalize_cart_id(cart_id)
        state = self._get_active_cart(cart_id)

        now = self.clock()
        if self.repo.delete_if_active(cart_id, now):
            if ordered_lines is not None:
                self._log_snapshot_drift(state, ordered_lines)
            logger.info(f"Cart {cart_id} finalized, {state.reserved_quantity} units consumed")
            return {"deleted": True}

        # wygasl albo zniknal miedzy odczytem a delete
        latest = self.repo.get_cart(cart_id)
        if latest is None:
            raise NotFoundError("Cart not found")
        self._expire(latest, self.clock())
        raise NotFoundError("Cart expired")

    def expire_cart(self, cart_id) -> bool:
        cart_id = _normalize_cart_id(cart_id)
        state = self.repo.get_cart(cart_id)
        if state is None:
            return False
        now = self.clock()
        if not state.is_expired(now):
            return False
        return self._expire(state, now)

    def cleanup_expired_carts(self) -> int:
        """Sweep: usuwa po jednym wygaslym koszyku az nie zostanie zaden."""
        now = self.clock()
        expired = 0

        while True:
            cart_id = self.repo.find_expired_cart_id(now)
            if cart_id is None:
                break

            state = self.repo.get_cart(cart_id)
            if state is None or not state.is_expired(now):
                continue

            if self._expire(state, now):
                expired += 1

        if expired:
            logger.info(f"Cart cleanup expired {expired} carts")
        return expired

    # =====================================================
    # helpers
    # =====================================================
    def _new_expiry(self) -> datetime:
        # kazda akcja na koszyku to TTL od nowa
        return self.clock() + self.cart_ttl

    def _get_active_cart(self, cart_id: uuid.UUID) -> CartState:
        state = self.repo.get_cart(cart_id)
        if state is None:
            raise NotFoundError("Cart not found")

        now = self.clock()
        if state.is_expired(now):
            self._expire(state, now)
            raise NotFoundError("Cart expired")

        return state

    def _expire(self, state: CartState, now: datetime) -> bool:
        # delete warunkowy: tylko jeden wywolujacy (sweep albo request) go wygra
        if not self.repo.delete_if_expired(state, now):
            return False

        self._release_lines(state)
        logger.info(f"Cart {state.id} expired, released {state.reserved_quantity} units")
        return True

    def _remove_line(self, state: CartState, product_id: int) -> Dict[str, Any]:
        quantity = state.quantity_of(product_id)
        lines = state.with_quantity(product_id, 0)

        with compensating(self.ledger, StockAdjustment.release(product_id, quantity)):
            state = self.repo.save_cart(state, lines, self._new_expiry())

        logger.info(f"Cart {state.id}: product {product_id} removed, released {quantity} units")
        return self._to_view(state)

    def _log_snapshot_drift(self, state: CartState, ordered_lines: Dict[int, int]) -> None:
        for product_id, ordered in sorted(ordered_lines.items()):
            reserved = state.quantity_of(product_id)
            if reserved < ordered:
                # pozycja zmniejszona/usunieta po checkoucie, roznica wrocila na stan
                logger.error(
                    f"Cart {state.id}: order has {ordered} of product {product_id} but only "
                    f"{reserved} were still reserved, {ordered - reserved} units may be oversold"
                )
        for product_id, reserved in sorted(state.lines.items()):
            ordered = ordered_lines.get(product_id, 0)
            if reserved > ordered:
                logger.warning(
                    f"Cart {state.id}: {reserved - ordered} units of product {product_id} "
                    f"consumed without being ordered"
                )

    def _release_lines(self, state: CartState) -> None:
        # koszyka juz nie ma, wiec nie ma czego cofac; bledy zglaszamy po przejsciu wszystkich pozycji
        failure = None
        for product_id, quantity in state.lines.items():
            try:
                _release_with_retry(self.ledger, product_id, quantity)
            except Exception as e:
                logger.critical(
                    f"Failed to release {quantity} of product {product_id} from cart {state.id}; "
                    f"stock needs reconciliation",
                    exc_info=True,
                )
                failure = e
        if failure is not None:
            raise failure

    def _to_view(self, state: CartState) -> Dict[str, Any]:
        # join z aktualnymi danymi produktow, produkt mogl zniknac
        products = self.products.get_products(state.lines.keys())
        items = []
        total = Decimal("0.00")

        for product_id in sorted(state.lines):
            quantity = state.lines[product_id]
            product = products.get(product_id)
            if product is not None:
                total += product.price * quantity
            items.append(
                {
                    "product_id": product_id,
                    "quantity": quantity,
                    "product": product_to_dict(product) if product is not None else None,
                }
            )

        return {
            "cart_id": state.id,
            "items": items,
            "total": total,
            "expires_at": state.expires_at,
        }
