# app/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import http_error
from app.data.database import get_db
from app.domain.errors import ShopError
from app.domain.schemas import DeletedOut, CartOut, ItemIn, ItemUpdateIn
from app.services.cart_service import CartService

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(db: Session):
    return CartService(db)


@router.post("", response_model=CartOut, status_code=201)
def create_cart(db: Session = Depends(get_db)):
    svc = get_service(db)
    return svc.create_cart()


@router.get("/{cart_id}", response_model=CartOut)
def get_cart(cart_id: str, db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.get_cart(cart_id)
    except ShopError as e:
        raise http_error(e)


@router.post("/{cart_id}/items", response_model=CartOut)
def add_item(cart_id: str, payload: ItemIn, db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.add_item(cart_id, payload.product_id, payload.quantity)
    except ShopError as e:
        raise http_error(e)


@router.put("/{cart_id}/items/{product_id}", response_model=CartOut)
def update_item(
    cart_id: str,
    product_id: int,
    payload: ItemUpdateIn,
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.update_item(cart_id, product_id, payload.quantity)
    except ShopError as e:
        raise http_error(e)


@router.delete("/{cart_id}/items/{product_id}", response_model=CartOut)
def remove_item(cart_id: str, product_id: int, db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.remove_item(cart_id, product_id)
    except ShopError as e:
        raise http_error(e)


@router.delete("/{cart_id}", response_model=DeletedOut)
def clear_cart(cart_id: str, db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.clear_cart(cart_id)
    except ShopError as e:
        raise http_error(e)
