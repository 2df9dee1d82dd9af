# sneakerhead/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from sneakerhead.core.auth import require_auth, require_admin
from sneakerhead.core.config import get_settings
from sneakerhead.database import get_session
from sneakerhead.models.user import User
from sneakerhead.repositories.cart_repo import CartRepository
from sneakerhead.repositories.order_repo import OrderRepository
from sneakerhead.repositories.product_repo import ProductRepository
from sneakerhead.repositories.user_repo import UserRepository
from sneakerhead.schemas.order import (
    OrderCreate,
    OrderPaymentUpdate,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from sneakerhead.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
cart_repo = CartRepository()
product_repo = ProductRepository()
user_repo = UserRepository()
service = OrderService(order_repo, cart_repo, product_repo, user_repo, get_settings())


# -------- User-facing endpoints --------


@router.post(
    "",
    response_model=OrderWithItemsRead,
    status_code=status.HTTP_201_CREATED,
)
def place_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Place an order for the submitted line items.

    Stock is reserved and the matching cart rows are removed in the same
    transaction; on any error nothing is written.
    """
    return service.place_order(session, current_user.id, payload)


@router.get(
    "/me",
    response_model=list[OrderWithItemsRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders, newest first.
    """
    return service.list_user_orders(session, current_user.id, skip, limit)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get an order with items. Owner or admin only.
    """
    return service.get_order(session, current_user, order_id)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[OrderWithItemsRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    """
    List all orders (admin only).
    """
    return service.list_all_orders(session, skip, limit)


@router.patch(
    "/{order_id}/status",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Update order status (admin only).

      processing -> shipped, cancelled

      shipped    -> delivered, cancelled

    Cancelling returns the items to stock unless the order was already
    delivered. A cancelled order stays cancelled.
    """
    return service.update_status(session, order_id, payload)


@router.put(
    "/{order_id}/pay",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_admin)],
)
def mark_order_paid(
    order_id: uuid.UUID,
    payload: OrderPaymentUpdate,
    session: Session = Depends(get_session),
):
    """
    Record a payment received outside eSewa (admin only). Cancelled
    orders cannot be paid.
    """
    return service.mark_paid(session, order_id, payload)
