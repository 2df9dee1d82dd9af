# sneakerhead/routers/products.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from sneakerhead.core.auth import require_admin, require_auth
from sneakerhead.database import get_session
from sneakerhead.models.user import User
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
from sneakerhead.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
service = ProductService(repo, ReviewRepository(), OrderRepository(), CartRepository())


# -------- Public endpoints --------


@router.get("", response_model=list[ProductRead])
def list_products(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    """
    List products, newest first.
    """
    return service.list_products(session, skip=skip, limit=limit)


@router.get("/{product_id}", response_model=ProductWithReviewsRead)
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get a single product with its reviews.
    """
    return service.get_product_with_reviews(session, product_id)


@router.get("/{product_id}/reviews", response_model=list[ReviewRead])
def list_reviews(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.list_reviews(session, product_id)


@router.post(
    "/{product_id}/reviews",
    response_model=ReviewRead,
    status_code=status.HTTP_201_CREATED,
)
def add_review(
    product_id: uuid.UUID,
    payload: ReviewCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Review a product (one review per user and product).
    """
    return service.add_review(session, current_user.id, product_id, payload)


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
):
    """
    Create a new product (admin only).
    """
    return service.create_product(session, payload)


@router.patch(
    "/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    """
    Update an existing product (admin only).
    """
    return service.update_product(session, product_id, payload)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Delete a product and its reviews (admin only).
    """
    service.delete_product(session, product_id)
    return None
