# sneakerhead/schemas/payment.py
import uuid
from decimal import Decimal

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field


class PaymentCreate(SQLModel):
    """
    Request to start an eSewa payment for an order.

    `amount` is optional; when given it must match the order total.
    """

    model_config = ConfigDict(extra="forbid")

    order_id: uuid.UUID
    amount: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    description: str | None = None


class PaymentRedirect(SQLModel):
    """
    Where to POST and what to POST (an auto-submitting form on the client).
    """

    payment_url: str
    params: dict[str, str]


class PaymentVerify(SQLModel):
    """
    Gateway return leg, relayed by the success page.

      - merchant_reference: `<prefix>-<orderId>-<timestamp>` (eSewa `oid`)
      - amount: paid amount (eSewa `amt`)
      - external_reference_id: gateway transaction id (eSewa `refId`)
    """

    merchant_reference: str
    amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    external_reference_id: str | None = None


class PaymentVerifyResult(SQLModel):
    success: bool
    message: str
