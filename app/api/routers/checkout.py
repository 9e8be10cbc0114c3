# app/api/routers/checkout.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_payment_client, http_error
from app.data.database import get_db
from app.domain.errors import ShopError
from app.domain.schemas import (
    CheckoutCompleteIn,
    CheckoutCompleteOut,
    CheckoutSessionIn,
    CheckoutSessionOut,
)
from app.services.checkout_service import CheckoutService
from app.services.payment_client import PaymentClient

router = APIRouter(prefix="/checkout", tags=["checkout"])


def get_service(db: Session, payment_client: PaymentClient):
    return CheckoutService(db, payment_client=payment_client)


@router.post("/session", response_model=CheckoutSessionOut)
def create_session(
    payload: CheckoutSessionIn,
    db: Session = Depends(get_db),
    payment_client: PaymentClient = Depends(get_payment_client),
):
    """
    Tworzy sesje Stripe Checkout dla koszyka.
    Koszyk nie jest przedluzany, rezerwacja trwa dalej wg swojego TTL.
    """
    svc = get_service(db, payment_client)
    try:
        return svc.begin_checkout(
            payload.cart_id,
            success_url=payload.success_url,
            cancel_url=payload.cancel_url,
            customer_name=payload.customer_name,
            customer_email=payload.customer_email,
            phone=payload.phone,
            address=payload.address,
        )
    except ShopError as e:
        raise http_error(e)


@router.post("/complete", response_model=CheckoutCompleteOut)
def complete(
    payload: CheckoutCompleteIn,
    db: Session = Depends(get_db),
    payment_client: PaymentClient = Depends(get_payment_client),
):
    """
    Zamienia oplacona sesje w zamowienie. Mozna wolac wielokrotnie,
    zawsze wraca to samo order_id.
    """
    svc = get_service(db, payment_client)
    try:
        return svc.complete_checkout(payload.session_id)
    except ShopError as e:
        raise http_error(e)
