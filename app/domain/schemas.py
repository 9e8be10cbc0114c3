# app/domain/schemas.py
import uuid
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from app.domain.cart import MAX_QUANTITY


class ProductIn(BaseModel):
    """Schema dla tworzenia produktu."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=5000)
    price: Decimal = Field(..., ge=0, decimal_places=2, description="Cena (>= 0)")
    category: str = Field("general", min_length=1, max_length=100)
    stock: int = Field(0, ge=0, le=MAX_QUANTITY, description="Stan magazynowy (>= 0)")
    images: List[str] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    """Schema dla edycji produktu, wszystkie pola opcjonalne."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    stock: Optional[int] = Field(None, ge=0, le=MAX_QUANTITY)
    images: Optional[List[str]] = None


class ProductOut(BaseModel):
    """Schema dla produktu (response)."""

    id: int
    name: str
    description: str
    price: Decimal
    category: str
    stock: int
    images: List[str]

    model_config = ConfigDict(from_attributes=True)


class ItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0, description="ID produktu (musi być > 0)")
    quantity: int = Field(..., ge=1, description="Ilość produktu (musi być >= 1)")


class ItemUpdateIn(BaseModel):
    """Schema dla zmiany ilosci, 0 usuwa pozycje."""

    quantity: int = Field(..., ge=0, description="Nowa ilość (0 usuwa pozycję)")


class CartItemOut(BaseModel):
    """Pozycja koszyka z dociagnietymi danymi produktu (None jesli produkt usuniety)."""

    product_id: int
    quantity: int
    product: Optional[ProductOut] = None


class CartOut(BaseModel):
    """Schema dla koszyka (response)."""

    cart_id: uuid.UUID
    items: List[CartItemOut]
    total: Decimal
    expires_at: datetime


class DeletedOut(BaseModel):
    deleted: bool


class CheckoutSessionIn(BaseModel):
    """Start platnosci dla koszyka."""

    cart_id: uuid.UUID
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None
    customer_name: Optional[str] = Field(None, max_length=200)
    customer_email: Optional[str] = Field(None, max_length=320)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)


class CheckoutSessionOut(BaseModel):
    id: str
    url: Optional[str] = None


class CheckoutCompleteIn(BaseModel):
    session_id: str = Field(..., min_length=1)


class CheckoutCompleteOut(BaseModel):
    order_id: int
    status: str


class OrderItemIn(BaseModel):
    product_id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    image_url: str = ""


class OrderCreate(BaseModel):
    """Schema dla recznego tworzenia zamówienia."""

    items: List[OrderItemIn] = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)


class OrderItemOut(BaseModel):
    product_id: int
    name: str
    price: Decimal
    quantity: int
    image_url: str

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    """Schema dla zamówienia (response)."""

    id: int
    items: List[OrderItemOut]
    total: Decimal
    customer_name: str
    email: str
    phone: str
    address: str
    checkout_session_id: Optional[str] = None
    cart_id: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
