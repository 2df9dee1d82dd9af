# sneakerhead/models/order.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order.

    Created together with its OrderItem rows in a single transaction
    (see OrderService.place_order).
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    total_amount: Decimal = Field(
        max_digits=10,
        decimal_places=2,
        description="Final amount (items - discount + shipping + tax)",
    )

    shipping_address: str
    shipping_city: str
    shipping_postal_code: str
    shipping_country: str

    payment_method: str = Field(default="eSewa")

    # pending | completed | failed
    payment_status: str = Field(
        default="pending",
        index=True,
    )

    # processing | shipped | delivered | cancelled
    order_status: str = Field(
        default="processing",
        index=True,
        description="Fulfilment lifecycle",
    )

    payment_id: str | None = Field(
        default=None,
        description="Gateway transaction reference",
    )

    delivered_at: datetime | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order. Never modified after creation.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
        ondelete="CASCADE",
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    # Unit price at time of order, decoupled from Product.price
    price: Decimal = Field(
        max_digits=10,
        decimal_places=2,
    )

    size: str | None = None
    color: str | None = None
