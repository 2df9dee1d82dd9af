# sneakerhead/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent customer / staff account.

    Role:
      - "user" | "admin"
      - anonymous shoppers have no row and keep their cart client-side.

    Only the password hash is stored; see `sneakerhead.core.auth`.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    username: str = Field(
        max_length=50,
        unique=True,
        index=True,
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    password_hash: str

    full_name: str | None = Field(default=None, max_length=100)
    address: str | None = None
    phone: str | None = Field(default=None, max_length=30)

    # Application role
    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
