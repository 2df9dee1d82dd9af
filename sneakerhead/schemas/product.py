# sneakerhead/schemas/product.py
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field


class ProductCreate(SQLModel):
    """
    Payload for creating a product (admin).
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=255)
    description: str
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    discount_price: Decimal | None = Field(
        default=None, gt=0, max_digits=10, decimal_places=2
    )
    image_url: str
    brand: str = Field(max_length=100)
    category: str = Field(max_length=100)
    count_in_stock: int = Field(default=0, ge=0)
    is_featured: bool = False
    is_new: bool = False
    sizes: list[str] | None = None
    colors: list[str] | None = None

    @field_validator("name", "brand", "category")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @model_validator(mode="after")
    def discount_below_price(self):
        if self.discount_price is not None and self.discount_price > self.price:
            raise ValueError("discount_price cannot exceed price")
        return self


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.
    All fields are optional.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    price: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    discount_price: Decimal | None = Field(
        default=None, gt=0, max_digits=10, decimal_places=2
    )
    image_url: str | None = None
    brand: str | None = Field(default=None, max_length=100)
    category: str | None = Field(default=None, max_length=100)
    count_in_stock: int | None = Field(default=None, ge=0)
    is_featured: bool | None = None
    is_new: bool | None = None
    sizes: list[str] | None = None
    colors: list[str] | None = None

    @field_validator("name", "brand", "category")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class ProductSummary(SQLModel):
    """
    Compact product view nested inside cart and order items.
    """

    id: uuid.UUID
    name: str
    price: Decimal
    discount_price: Decimal | None = None
    image_url: str
    brand: str
    count_in_stock: int


class ProductRead(SQLModel):
    """
    Product representation for clients.
    """

    id: uuid.UUID
    name: str
    description: str
    price: Decimal
    discount_price: Decimal | None = None
    image_url: str
    brand: str
    category: str
    count_in_stock: int
    rating: float
    num_reviews: int
    is_featured: bool
    is_new: bool
    sizes: list[str] | None = None
    colors: list[str] | None = None
    created_at: datetime


class ReviewCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    rating: int = Field(ge=1, le=5)
    comment: str | None = None

    @field_validator("comment")
    @classmethod
    def normalize_comment(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class ReviewRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    product_id: uuid.UUID
    rating: int
    comment: str | None
    created_at: datetime


class ProductWithReviewsRead(ProductRead):
    """
    Product detail view including its reviews.
    """

    reviews: list[ReviewRead]
