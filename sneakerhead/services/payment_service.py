# sneakerhead/services/payment_service.py
import logging
import re
import time
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from sneakerhead.core.config import Settings
from sneakerhead.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StorageUnavailableError,
    ValidationFailureError,
)
from sneakerhead.core.esewa import EsewaClient
from sneakerhead.models.order import Order
from sneakerhead.models.user import User
from sneakerhead.repositories.order_repo import OrderRepository
from sneakerhead.schemas.payment import (
    PaymentCreate,
    PaymentRedirect,
    PaymentVerify,
    PaymentVerifyResult,
)

logger = logging.getLogger(__name__)


def make_merchant_reference(prefix: str, order_id: uuid.UUID, timestamp_ms: int) -> str:
    """`<prefix>-<orderId>-<timestamp>`; the timestamp keeps retries unique."""
    return f"{prefix}-{order_id}-{timestamp_ms}"


def parse_merchant_reference(prefix: str, reference: str) -> uuid.UUID | None:
    """
    Extract the order id from a merchant reference, or None if the
    reference does not have the expected shape.
    """
    pattern = rf"{re.escape(prefix)}-(?P<order_id>[0-9a-fA-F-]{{36}})-\d+"
    match = re.fullmatch(pattern, reference.strip())
    if not match:
        return None
    try:
        return uuid.UUID(match.group("order_id"))
    except ValueError:
        return None


class PaymentService:
    """
    eSewa hand-off and return-leg confirmation.

    Responsibilities:
      - build the redirect form for an unpaid order
      - confirm a returned transaction with the gateway before marking
        the order paid
      - keep confirmation idempotent for replayed callbacks
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        gateway: EsewaClient,
        settings: Settings,
    ):
        self.order_repo = order_repo
        self.gateway = gateway
        self.reference_prefix = settings.MERCHANT_REFERENCE_PREFIX
        self.verify_with_gateway = settings.ESEWA_VERIFY_PAYMENTS

    def _get_order(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def _save(self, session: Session, order: Order) -> None:
        order_id = order.id
        try:
            self.order_repo.update_order(session, order)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Payment update failed for order %s", order_id)
            raise StorageUnavailableError()

    def create_payment(
        self,
        session: Session,
        caller: User,
        payload: PaymentCreate,
    ) -> PaymentRedirect:
        """
        Build the eSewa redirect for the caller's order.

        The amount charged is always the stored order total.
        """
        order = self._get_order(session, payload.order_id)

        if order.user_id != caller.id:
            raise ForbiddenError()
        if order.payment_status == "completed":
            raise ConflictError("Order is already paid")
        if order.order_status == "cancelled":
            raise ConflictError("Order is cancelled")
        if payload.amount is not None and payload.amount != order.total_amount:
            raise ValidationFailureError(
                f"Amount {payload.amount} does not match order total {order.total_amount}"
            )

        reference = make_merchant_reference(
            self.reference_prefix, order.id, int(time.time() * 1000)
        )
        logger.info(
            "Payment started for order %s (%s): %s",
            order.id,
            payload.description or "no description",
            reference,
        )
        return PaymentRedirect(
            payment_url=self.gateway.payment_url,
            params=self.gateway.build_form(reference, order.total_amount),
        )

    def verify_payment(
        self,
        session: Session,
        payload: PaymentVerify,
    ) -> PaymentVerifyResult:
        """
        Handle the gateway's return leg.

        Order of checks:
          1. merchant reference parses            (else 400)
          2. order exists                         (else 404)
          3. a gateway reference id is present    (else success=False)
          4. amount equals the order total        (else 400)
          5. already paid with the same reference -> success, no change
             already paid with another reference  -> 409
          6. order is not cancelled               (else 409)
          7. gateway confirms the transaction     (else success=False,
             pending order marked 'failed')
          8. mark completed
        """
        order_id = parse_merchant_reference(self.reference_prefix, payload.merchant_reference)
        if order_id is None:
            raise ValidationFailureError("Invalid order ID format")

        order = self._get_order(session, order_id)

        reference_id = (payload.external_reference_id or "").strip()
        if not reference_id:
            return PaymentVerifyResult(success=False, message="Payment verification failed")

        if payload.amount != order.total_amount:
            raise ValidationFailureError(
                f"Paid amount {payload.amount} does not match order total {order.total_amount}"
            )

        if order.payment_status == "completed":
            if order.payment_id == reference_id:
                return PaymentVerifyResult(success=True, message="Payment already verified")
            raise ConflictError("Order is already paid with a different reference")

        if order.order_status == "cancelled":
            raise ConflictError("Order is cancelled")

        if self.verify_with_gateway and not self.gateway.verify_transaction(
            payload.merchant_reference, order.total_amount, reference_id
        ):
            if order.payment_status == "pending":
                order.payment_status = "failed"
                self._save(session, order)
            logger.warning(
                "Gateway rejected reference %s for order %s", reference_id, order.id
            )
            return PaymentVerifyResult(success=False, message="Payment verification failed")

        order.payment_status = "completed"
        order.payment_id = reference_id
        self._save(session, order)

        logger.info("Order %s paid (ref %s)", order.id, reference_id)
        return PaymentVerifyResult(success=True, message="Payment verified successfully")
