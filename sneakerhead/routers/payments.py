# sneakerhead/routers/payments.py
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from sneakerhead.core.auth import require_auth
from sneakerhead.core.config import get_settings
from sneakerhead.core.esewa import get_esewa_client
from sneakerhead.database import get_session
from sneakerhead.models.user import User
from sneakerhead.repositories.order_repo import OrderRepository
from sneakerhead.schemas.payment import (
    PaymentCreate,
    PaymentRedirect,
    PaymentVerify,
    PaymentVerifyResult,
)
from sneakerhead.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])

order_repo = OrderRepository()
service = PaymentService(order_repo, get_esewa_client(), get_settings())


@router.post("/esewa/create", response_model=PaymentRedirect)
def create_esewa_payment(
    payload: PaymentCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Build the eSewa redirect for one of the caller's orders.

    The client renders `params` as hidden inputs of a form that
    auto-submits to `payment_url`.
    """
    return service.create_payment(session, current_user, payload)


@router.post("/esewa/verify", response_model=PaymentVerifyResult)
def verify_esewa_payment(
    payload: PaymentVerify,
    response: Response,
    session: Session = Depends(get_session),
):
    """
    Return leg from eSewa (relayed by the payment success page).

    Unauthenticated: the transaction is confirmed with eSewa itself
    before the order is marked paid.
    """
    result = service.verify_payment(session, payload)
    if not result.success:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return result
