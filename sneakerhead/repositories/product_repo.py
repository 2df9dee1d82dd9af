# sneakerhead/repositories/product_repo.py
import uuid

from sqlalchemy import update
from sqlmodel import Session, select

from sneakerhead.models.product import Product


class ProductRepository:
    """
    Data access layer for Product.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_many(
        self,
        session: Session,
        product_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, Product]:
        if not product_ids:
            return {}
        stmt = select(Product).where(Product.id.in_(product_ids))
        return {p.id: p for p in session.exec(stmt).all()}

    def list(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Product]:
        stmt = (
            select(Product)
            .order_by(Product.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def delete(self, session: Session, product: Product) -> None:
        session.delete(product)
        session.commit()

    # ----- Stock (no commits; callers own the transaction) -----

    def decrement_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> bool:
        """
        Check-and-set decrement in a single statement.

        Returns False when the row is missing or holds fewer than
        `quantity` units; nothing is changed in that case.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.count_in_stock >= quantity)
            .values(count_in_stock=Product.count_in_stock - quantity)
            .execution_options(synchronize_session=False)
        )
        result = session.exec(stmt)  # type: ignore[call-overload]
        return result.rowcount == 1

    def restore_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> None:
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(count_in_stock=Product.count_in_stock + quantity)
            .execution_options(synchronize_session=False)
        )
        session.exec(stmt)  # type: ignore[call-overload]
