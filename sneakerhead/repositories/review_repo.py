# sneakerhead/repositories/review_repo.py
import uuid

from sqlalchemy import func
from sqlmodel import Session, select

from sneakerhead.models.product import Review


class ReviewRepository:
    """
    Data access layer for product reviews.

    NOTE:
      - create() only flushes; the service recomputes the product's
        rating in the same transaction and commits.
    """

    def list_for_product(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> list[Review]:
        stmt = (
            select(Review)
            .where(Review.product_id == product_id)
            .order_by(Review.created_at.desc())
        )
        return session.exec(stmt).all()

    def get_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
    ) -> Review | None:
        stmt = select(Review).where(
            Review.user_id == user_id, Review.product_id == product_id
        )
        return session.exec(stmt).first()

    def create(self, session: Session, review: Review) -> Review:
        session.add(review)
        session.flush()
        return review

    def rating_stats(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> tuple[float, int]:
        """
        Mean rating and review count for a product.
        """
        stmt = select(
            func.coalesce(func.avg(Review.rating), 0.0),
            func.count(Review.id),
        ).where(Review.product_id == product_id)
        avg, count = session.exec(stmt).one()
        return float(avg or 0.0), int(count or 0)

    def delete_for_product(self, session: Session, product_id: uuid.UUID) -> None:
        for row in self.list_for_product(session, product_id):
            session.delete(row)
