# app/repos/cart_repo.py
import uuid
from datetime import datetime
from typing import Dict

from sqlalchemy import select, update, delete, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.domain.cart import CartState
from app.domain.errors import ConflictError, NotFoundError
from app.utils.clock import as_utc


class CartRepo:
    """
    Dostep do koszykow.

    Zwraca niezmienne `CartState`, nie obiekty ORM. Wszystkie zapisy sa
    warunkowe (version / expires_at), to jedyny mechanizm wykluczania.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_cart(self, expires_at: datetime) -> CartState:
        cart_id = uuid.uuid4()
        try:
            self.db.add(CartModel(id=cart_id, version=1, expires_at=expires_at))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return CartState(id=cart_id, version=1, expires_at=as_utc(expires_at), lines={})

    def get_cart(self, cart_id: uuid.UUID) -> CartState | None:
        # jeden select z joinem, zeby wersja i pozycje byly z tego samego momentu
        rows = self.db.execute(
            select(
                CartModel.id,
                CartModel.version,
                CartModel.expires_at,
                CartItemModel.product_id,
                CartItemModel.quantity,
            )
            .outerjoin(CartItemModel, CartItemModel.cart_id == CartModel.id)
            .where(CartModel.id == cart_id)
        ).all()
        self.db.rollback()

        if not rows:
            return None

        first = rows[0]
        lines = {r.product_id: r.quantity for r in rows if r.product_id is not None}
        return CartState(
            id=first.id,
            version=first.version,
            expires_at=as_utc(first.expires_at),
            lines=lines,
        )

    def exists(self, cart_id: uuid.UUID) -> bool:
        found = self.db.execute(select(CartModel.id).where(CartModel.id == cart_id)).first()
        self.db.rollback()
        return found is not None

    def save_cart(self, state: CartState, lines: Dict[int, int], expires_at: datetime) -> CartState:
        """
        Optimistic locking:
        UPDATE carts SET version = v + 1 WHERE id = :id AND version = v,
        pozycje nadpisywane w tej samej transakcji.
        """
        try:
            rowcount = self.db.execute(
                update(CartModel)
                .where(CartModel.id == state.id, CartModel.version == state.version)
                .values(version=state.version + 1, expires_at=expires_at)
                .execution_options(synchronize_session=False)
            ).rowcount

            if rowcount == 0:
                self.db.rollback()
            else:
                if lines != state.lines:
                    self.db.execute(delete(CartItemModel).where(CartItemModel.cart_id == state.id))
                    if lines:
                        self.db.execute(
                            insert(CartItemModel),
                            [
                                {"cart_id": state.id, "product_id": pid, "quantity": qty}
                                for pid, qty in lines.items()
                            ],
                        )
                self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        if rowcount == 0:
            if self.exists(state.id):
                raise ConflictError("Cart was modified by another operation")
            raise NotFoundError("Cart not found")

        return CartState(
            id=state.id,
            version=state.version + 1,
            expires_at=as_utc(expires_at),
            lines=dict(lines),
        )

    def delete_if_expired(self, state: CartState, now: datetime) -> bool:
        # DELETE ... WHERE id AND version AND expires_at <= now
        # tylko jeden wywolujacy zobaczy rowcount == 1
        return self._delete_where(
            state.id,
            CartModel.version == state.version,
            CartModel.expires_at <= now,
        )

    def delete_if_active(self, cart_id: uuid.UUID, now: datetime) -> bool:
        return self._delete_where(cart_id, CartModel.expires_at > now)

    def delete_cart(self, state: CartState) -> bool:
        return self._delete_where(state.id, CartModel.version == state.version)

    def find_expired_cart_id(self, now: datetime) -> uuid.UUID | None:
        cart_id = self.db.execute(
            select(CartModel.id).where(CartModel.expires_at <= now).limit(1)
        ).scalar_one_or_none()
        self.db.rollback()
        return cart_id

    def _delete_where(self, cart_id: uuid.UUID, *conditions) -> bool:
        try:
            rowcount = self.db.execute(
                delete(CartModel)
                .where(CartModel.id == cart_id, *conditions)
                .execution_options(synchronize_session=False)
            ).rowcount
            if rowcount:
                # sqlite bez PRAGMA foreign_keys nie robi kaskady
                self.db.execute(delete(CartItemModel).where(CartItemModel.cart_id == cart_id))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return rowcount == 1
