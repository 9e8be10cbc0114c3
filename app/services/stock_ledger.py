# app/services/stock_ledger.py
from sqlalchemy import update, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.data.models.product import ProductModel
from app.domain.cart import MAX_QUANTITY
from app.domain.errors import NotFoundError, InsufficientStockError
from app.utils.logging import get_logger

logger = get_logger(__name__)


class StockLedger:
    """
    Stan magazynowy produktow.

    Rezerwacja = fizyczne odjecie ze `stock`, bez osobnych rekordow "hold".
    Kazda operacja to jeden atomowy UPDATE z warunkiem i osobny commit,
    wiec nie potrzeba zadnych lockow po stronie aplikacji.
    """

    def __init__(self, db: Session):
        self.db = db

    def reserve(self, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            return

        if quantity > MAX_QUANTITY:
            # stock nigdy nie przekracza zakresu kolumny, wiec i tak by nie starczylo
            self._ensure_exists(product_id)
            raise InsufficientStockError("Insufficient stock")

        # UPDATE products SET stock = stock - q WHERE id = :id AND stock >= q
        try:
            result = self.db.execute(
                update(ProductModel)
                .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
                .values(stock=ProductModel.stock - quantity)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except (SQLAlchemyError, OverflowError):
            self.db.rollback()
            raise

        if result.rowcount == 1:
            logger.info(f"Reserved {quantity} of product {product_id}")
            return

        self._ensure_exists(product_id)
        raise InsufficientStockError("Insufficient stock")

    def release(self, product_id: int, quantity: int) -> bool:
        if quantity <= 0:
            return True

        try:
            result = self.db.execute(
                update(ProductModel)
                .where(ProductModel.id == product_id)
                .values(stock=ProductModel.stock + quantity)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except (SQLAlchemyError, OverflowError):
            self.db.rollback()
            raise

        if result.rowcount == 0:
            # produkt usuniety w miedzyczasie, nie ma gdzie oddac
            logger.warning(f"Cannot release {quantity} of product {product_id}: product not found")
            return False

        logger.info(f"Released {quantity} of product {product_id}")
        return True

    def available(self, product_id: int) -> int | None:
        stock = self.db.execute(
            select(ProductModel.stock).where(ProductModel.id == product_id)
        ).scalar_one_or_none()
        self.db.rollback()
        return stock

    def _ensure_exists(self, product_id: int) -> None:
        exists = self.db.execute(
            select(ProductModel.id).where(ProductModel.id == product_id)
        ).first()
        # select otwiera transakcje, zamknij ja zeby nie trzymac snapshotu
        self.db.rollback()

        if not exists:
            raise NotFoundError("Product not found")
