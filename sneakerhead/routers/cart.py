# sneakerhead/routers/cart.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from sneakerhead.core.auth import require_customer
from sneakerhead.database import get_session
from sneakerhead.models.user import User
from sneakerhead.repositories.cart_repo import CartRepository
from sneakerhead.repositories.product_repo import ProductRepository
from sneakerhead.schemas.cart import CartSummary, CartItemCreate, CartItemUpdate
from sneakerhead.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

cart_repo = CartRepository()
product_repo = ProductRepository()
service = CartService(cart_repo, product_repo)


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    List the caller's cart rows, one per (product, size, color) variant,
    priced at the product's current effective price.

    Customers only; admins get 403.
    """
    return service.get_cart_summary(session, current_user.id)


@router.post("", response_model=CartSummary)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Put a variant in the cart. Adding a variant that already has a row
    bumps that row's quantity instead of creating a second one.

    The merged quantity must fit the product's stock (409 otherwise).
    """
    return service.add_to_cart(session, current_user.id, payload)


@router.patch("/{item_id}", response_model=CartSummary)
def update_cart_item(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Set the quantity on one of the caller's variant rows.

    The row must belong to the caller (403) and the new quantity must fit
    the product's stock (409).
    """
    return service.update_quantity(
        session=session,
        user_id=current_user.id,
        item_id=item_id,
        payload=payload,
    )


@router.delete("/{item_id}", response_model=CartSummary)
def remove_cart_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """
    Drop one variant row. Other variants of the same product stay.
    """
    return service.remove_item(session, current_user.id, item_id)


@router.delete("", response_model=CartSummary)
def clear_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_customer),
):
    """Drop every variant row the caller has."""
    return service.clear_cart(session, current_user.id)
