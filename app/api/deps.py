# app/api/deps.py
import secrets

from fastapi import Header, HTTPException

from app.domain.errors import ConflictError, NotFoundError, ShopError
from app.services.payment_client import PaymentClient
from app.utils.settings import ADMIN_TOKEN


def get_payment_client() -> PaymentClient:
    return PaymentClient()


def require_admin(x_admin_token: str | None = Header(None)):
    if not x_admin_token or not secrets.compare_digest(x_admin_token, ADMIN_TOKEN):
        raise HTTPException(status_code=401, detail="Admin token required")


def http_error(e: ShopError) -> HTTPException:
    # NotFound -> 404, Conflict -> 409, reszta (walidacja, brak towaru) -> 400
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))
