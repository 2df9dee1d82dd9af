# sneakerhead/models/product.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Sneaker catalog entry.

    count_in_stock is only ever lowered by order placement (atomic
    conditional UPDATE in ProductRepository.decrement_stock) and set
    directly by catalog administration.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=255,
        index=True,
        description="Display name of the sneaker",
    )

    description: str = Field(
        description="Long description",
    )

    price: Decimal = Field(
        max_digits=10,
        decimal_places=2,
        description="List unit price",
    )

    discount_price: Decimal | None = Field(
        default=None,
        max_digits=10,
        decimal_places=2,
        description="Sale price; overrides price when set",
    )

    image_url: str = Field(
        description="Main image URL",
    )

    brand: str = Field(max_length=100, index=True)
    category: str = Field(max_length=100, index=True)

    count_in_stock: int = Field(
        default=0,
        ge=0,
        description="How many units currently in stock",
    )

    # Denormalized from reviews
    rating: float = Field(default=0.0)
    num_reviews: int = Field(default=0)

    is_featured: bool = Field(default=False)
    is_new: bool = Field(default=False)

    # Opaque variant lists, e.g. ["8", "9", "10"] / ["Black", "White"]
    sizes: list[str] | None = Field(default=None, sa_column=Column(JSON))
    colors: list[str] | None = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    @property
    def effective_price(self) -> Decimal:
        """Price a customer pays right now."""
        if self.discount_price is not None:
            return self.discount_price
        return self.price


class Review(SQLModel, table=True):
    """
    Customer review of a product. One per (user, product).
    """

    __tablename__ = "reviews"
    __table_args__ = (UniqueConstraint("user_id", "product_id"),)

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

    rating: int = Field(ge=1, le=5)
    comment: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
