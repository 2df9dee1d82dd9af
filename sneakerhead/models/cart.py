# sneakerhead/models/cart.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class CartItem(SQLModel, table=True):
    """
    Shopping cart entry for a signed-in user.
    One row per distinct (user, product, size, color); the service merges
    repeated adds into the existing row.
    """

    __tablename__ = "cart_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
        ondelete="CASCADE",
    )

    quantity: int = Field(
        default=1,
        gt=0,
        description="Must be >= 1",
    )

    size: str | None = None
    color: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
