# app/domain/cart.py
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict

# zakres kolumny INTEGER (products.stock)
MAX_QUANTITY = 2**31 - 1


@dataclass(frozen=True)
class CartState:
    """
    Niezmienny snapshot koszyka z momentu odczytu.

    Koordynator rezerwacji podejmuje decyzje tylko na tym snapshocie,
    zapis idzie z warunkiem na `version`.
    """

    id: uuid.UUID
    version: int
    expires_at: datetime
    lines: Dict[int, int] = field(default_factory=dict)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def quantity_of(self, product_id: int) -> int:
        return self.lines.get(product_id, 0)

    def has_line(self, product_id: int) -> bool:
        return product_id in self.lines

    def with_quantity(self, product_id: int, quantity: int) -> Dict[int, int]:
        # quantity 0 usuwa pozycje
        lines = dict(self.lines)
        if quantity <= 0:
            lines.pop(product_id, None)
        else:
            lines[product_id] = quantity
        return lines

    @property
    def reserved_quantity(self) -> int:
        return sum(self.lines.values())
