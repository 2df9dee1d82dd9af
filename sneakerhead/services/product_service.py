# sneakerhead/services/product_service.py
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from sneakerhead.core.errors import ConflictError, NotFoundError
from sneakerhead.models.product import Product, Review
from sneakerhead.repositories.cart_repo import CartRepository
from sneakerhead.repositories.order_repo import OrderRepository
from sneakerhead.repositories.product_repo import ProductRepository
from sneakerhead.repositories.review_repo import ReviewRepository
from sneakerhead.schemas.product import (
    ProductCreate,
    ProductRead,
    ProductUpdate,
    ProductWithReviewsRead,
    ReviewCreate,
    ReviewRead,
)

logger = logging.getLogger(__name__)


class ProductService:
    """
    Business logic for the catalog and its reviews.

    Responsibilities:
      - admin CRUD (enforced at router via require_admin)
      - review creation with rating aggregate kept on the product
      - refusing to delete products that appear on orders
    """

    def __init__(
        self,
        repo: ProductRepository,
        review_repo: ReviewRepository,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
    ):
        self.repo = repo
        self.review_repo = review_repo
        self.order_repo = order_repo
        self.cart_repo = cart_repo

    # ----- Products -----

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Product]:
        return self.repo.list(session, skip=skip, limit=limit)

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def get_product_with_reviews(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> ProductWithReviewsRead:
        product = self.get_product(session, product_id)
        reviews = self.review_repo.list_for_product(session, product_id)
        return ProductWithReviewsRead(
            **ProductRead.model_validate(product, from_attributes=True).model_dump(),
            reviews=[ReviewRead.model_validate(r, from_attributes=True) for r in reviews],
        )

    def create_product(
        self,
        session: Session,
        payload: ProductCreate,
    ) -> Product:
        product = Product(**payload.model_dump())
        product = self.repo.create(session, product)
        logger.info("Product %s created (%s)", product.id, product.name)
        return product

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> Product:
        """
        Partial update of a product. Setting count_in_stock here is the
        catalog-administration path for restocking.
        """
        product = self.get_product(session, product_id)

        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(product, field, value)

        return self.repo.update(session, product)

    def delete_product(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> None:
        """
        Delete a product with its reviews and cart rows.

        Products referenced by order items are kept (409): order history
        must keep resolving.
        """
        product = self.get_product(session, product_id)

        if self.order_repo.count_items_for_product(session, product_id):
            raise ConflictError("Product appears on orders and cannot be deleted")

        self.review_repo.delete_for_product(session, product_id)
        self.cart_repo.delete_for_product(session, product_id)
        self.repo.delete(session, product)

    # ----- Reviews -----

    def list_reviews(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> list[Review]:
        self.get_product(session, product_id)
        return self.review_repo.list_for_product(session, product_id)

    def add_review(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
        payload: ReviewCreate,
    ) -> Review:
        """
        Add the user's review and refresh the product's rating/num_reviews
        in the same commit.
        """
        product = self.get_product(session, product_id)

        if self.review_repo.get_for_user(session, user_id, product_id):
            raise ConflictError("Product already reviewed")

        review = Review(
            user_id=user_id,
            product_id=product_id,
            rating=payload.rating,
            comment=payload.comment,
        )
        try:
            self.review_repo.create(session, review)
            rating, count = self.review_repo.rating_stats(session, product_id)
            product.rating = round(rating, 2)
            product.num_reviews = count
            session.add(product)
            session.commit()
        except IntegrityError:
            session.rollback()
            raise ConflictError("Product already reviewed")

        session.refresh(review)
        return review
