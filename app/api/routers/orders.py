# app/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import http_error, require_admin
from app.data.database import get_db
from app.domain.errors import ShopError
from app.domain.schemas import OrderCreate, OrderOut
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"], dependencies=[Depends(require_admin)])


def get_service(db: Session):
    return OrderService(db)


@router.post("", response_model=OrderOut, status_code=201)
def create_order(payload: OrderCreate, db: Session = Depends(get_db)):
    """
    Reczne zamowienie (panel admina), bez sesji platnosci.
    Wysyła powiadomienie asynchronicznie.
    """
    svc = get_service(db)
    customer = {
        "customer_name": payload.customer_name,
        "email": payload.email,
        "phone": payload.phone,
        "address": payload.address,
    }
    try:
        order, _ = svc.create_order([item.model_dump() for item in payload.items], customer)
        return order
    except ShopError as e:
        raise http_error(e)


@router.get("", response_model=List[OrderOut])
def list_orders(db: Session = Depends(get_db)):
    svc = get_service(db)
    return svc.list_orders()


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, db: Session = Depends(get_db)):
    """
    Pobiera szczegóły zamówienia.
    """
    svc = get_service(db)
    try:
        return svc.get_order(order_id)
    except ShopError as e:
        raise http_error(e)
