# sneakerhead/repositories/cart_repo.py
import uuid
from typing import Iterable

from sqlmodel import Session, select

from sneakerhead.models.cart import CartItem


def _variant_clause(column, value: str | None):
    # NULL never compares equal in SQL
    if value is None:
        return column.is_(None)
    return column == value


class CartRepository:

    # Get items for a user
    def list_for_user(self, session: Session, user_id: uuid.UUID) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at.desc())
        )
        return session.exec(stmt).all()

    def get_variant(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
        size: str | None,
        color: str | None,
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.user_id == user_id,
            CartItem.product_id == product_id,
            _variant_clause(CartItem.size, size),
            _variant_clause(CartItem.color, color),
        )
        return session.exec(stmt).first()

    def get_by_id(self, session: Session, item_id: uuid.UUID) -> CartItem | None:
        return session.get(CartItem, item_id)

    # CRUD
    def create(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def update(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def delete(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.commit()

    def clear_user_cart(self, session: Session, user_id: uuid.UUID) -> None:
        for row in self.list_for_user(session, user_id):
            session.delete(row)
        session.commit()

    def delete_variants(
        self,
        session: Session,
        user_id: uuid.UUID,
        variants: Iterable[tuple[uuid.UUID, str | None, str | None]],
    ) -> int:
        """
        Delete the user's rows matching any (product_id, size, color).

        Does not commit: order placement runs this inside its own
        transaction.
        """
        wanted = set(variants)
        removed = 0
        for row in self.list_for_user(session, user_id):
            if (row.product_id, row.size, row.color) in wanted:
                session.delete(row)
                removed += 1
        return removed

    def delete_for_product(self, session: Session, product_id: uuid.UUID) -> None:
        stmt = select(CartItem).where(CartItem.product_id == product_id)
        for row in session.exec(stmt).all():
            session.delete(row)
