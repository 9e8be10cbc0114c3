# app/services/reservation.py
"""
Kroki sagi dla rezerwacji towaru.

Kazda mutacja koszyka to dwa niezalezne zapisy: korekta stanu w `StockLedger`
i zapis koszyka. `StockAdjustment` to pierwszy krok razem ze swoim undo,
`compensating()` pilnuje, zeby undo poszlo, jesli zapis koszyka sie wywali.
"""
from contextlib import contextmanager
from dataclasses import dataclass

from app.services.stock_ledger import StockLedger
from app.utils.logging import get_logger
from app.utils.retry import db_retry

logger = get_logger(__name__)


@dataclass(frozen=True)
class StockAdjustment:
    """delta > 0 rezerwuje (odejmuje ze stanu), delta < 0 zwalnia."""

    product_id: int
    delta: int

    @classmethod
    def reserve(cls, product_id: int, quantity: int) -> "StockAdjustment":
        return cls(product_id, quantity)

    @classmethod
    def release(cls, product_id: int, quantity: int) -> "StockAdjustment":
        return cls(product_id, -quantity)

    @property
    def is_noop(self) -> bool:
        return self.delta == 0

    def inverse(self) -> "StockAdjustment":
        return StockAdjustment(self.product_id, -self.delta)

    def apply(self, ledger: StockLedger) -> None:
        if self.delta > 0:
            ledger.reserve(self.product_id, self.delta)
        elif self.delta < 0:
            ledger.release(self.product_id, -self.delta)

    def undo(self, ledger: StockLedger) -> None:
        self.inverse().apply(ledger)


@db_retry()
def _undo_with_retry(ledger: StockLedger, adjustment: StockAdjustment) -> None:
    adjustment.undo(ledger)


def compensate(ledger: StockLedger, adjustment: StockAdjustment) -> bool:
    """
    Cofa korekte stanu. Nie rzuca: wywolujacy i tak zglasza oryginalny blad.
    Zwraca False, jesli stanu nie udalo sie przywrocic.
    """
    if adjustment.is_noop:
        return True
    try:
        _undo_with_retry(ledger, adjustment)
    except Exception:
        # stan magazynu rozjechany, potrzebna reczna korekta
        logger.critical(
            f"Compensation failed for product {adjustment.product_id} "
            f"(undo delta {-adjustment.delta}); stock needs reconciliation",
            exc_info=True,
        )
        return False
    logger.info(
        f"Compensated stock for product {adjustment.product_id} (undo delta {-adjustment.delta})"
    )
    return True


@contextmanager
def compensating(ledger: StockLedger, adjustment: StockAdjustment):
    """
    with compensating(ledger, StockAdjustment.reserve(pid, 2)):
        repo.save_cart(...)

    Najpierw korekta stanu, potem blok. Blad w bloku -> undo, potem
    ten sam wyjatek leci dalej.
    """
    adjustment.apply(ledger)
    try:
        yield adjustment
    except Exception as e:
        logger.warning(f"Cart write failed after stock adjustment {adjustment}: {e}")
        compensate(ledger, adjustment)
        raise
