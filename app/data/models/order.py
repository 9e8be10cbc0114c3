from sqlalchemy import Column, Integer, String, DateTime, Numeric, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from app.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)

    total = Column(Numeric(12, 2), nullable=False)
    customer_name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False)
    phone = Column(String(50), nullable=False)
    address = Column(String(500), nullable=False)

    # klucz idempotencji, max jedno zamowienie na sesje platnosci
    checkout_session_id = Column(String(255), nullable=True, unique=True)
    # koszyk po finalizacji juz nie istnieje, wiec bez FK
    cart_id = Column(Uuid(as_uuid=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
        lazy="selectin",
    )
