# sneakerhead/schemas/order.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from sneakerhead.schemas.product import ProductSummary
from sneakerhead.schemas.user import UserPublic

PaymentStatus = Literal["pending", "completed", "failed"]
OrderStatus = Literal["processing", "shipped", "delivered", "cancelled"]


class OrderItemCreate(SQLModel):
    """
    One requested line item. `price` is the unit price the shopper saw.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int = Field(gt=0)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    size: str | None = None
    color: str | None = None


class OrderCreate(SQLModel):
    """
    Payload for placing an order.

    User provides:
      - line items (product, quantity, unit price, variant)
      - shipping address
      - payment method
      - total_amount as displayed at checkout
      - optional coupon code

    Backend derives:
      - user_id from token
      - payment_status = 'pending', order_status = 'processing'
    """

    model_config = ConfigDict(extra="forbid")

    items: list[OrderItemCreate] = Field(min_length=1)
    shipping_address: str
    shipping_city: str
    shipping_postal_code: str
    shipping_country: str
    payment_method: str = "eSewa"
    total_amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    coupon_code: str | None = None

    @field_validator(
        "shipping_address",
        "shipping_city",
        "shipping_postal_code",
        "shipping_country",
        "payment_method",
    )
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("coupon_code")
    @classmethod
    def normalize_coupon(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip().upper()
        return v or None


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    user_id: uuid.UUID
    total_amount: Decimal
    shipping_address: str
    shipping_city: str
    shipping_postal_code: str
    shipping_country: str
    payment_method: str
    payment_status: PaymentStatus
    order_status: OrderStatus
    payment_id: str | None
    delivered_at: datetime | None
    created_at: datetime


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    price: Decimal
    size: str | None
    color: str | None
    product: ProductSummary | None = None


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items and the owner's public profile.
    """

    items: list[OrderItemRead]
    user: UserPublic | None = None


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus


class OrderPaymentUpdate(SQLModel):
    """
    Admin payload to record a payment confirmed outside the gateway flow.
    """

    model_config = ConfigDict(extra="forbid")

    payment_id: str = Field(min_length=1)
