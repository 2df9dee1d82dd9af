"""Pytest fixtures for the storefront API tests."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

from decimal import Decimal, ROUND_HALF_UP

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from sneakerhead.core.auth import create_access_token, hash_password
from sneakerhead.database import build_engine, get_session
from sneakerhead.main import app
from sneakerhead.models.cart import CartItem
from sneakerhead.models.product import Product
from sneakerhead.models.user import User


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = build_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    """Factory: persist a user and return it."""
    counter = {"n": 0}

    def _make(role: str = "user", password: str = "secret123", **fields) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=fields.pop("username", f"{role}{n}"),
            email=fields.pop("email", f"{role}{n}@example.com"),
            password_hash=hash_password(password),
            role=role,
            **fields,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_product(session):
    """Factory: persist a product and return it."""

    def _make(
        price: str = "100.00",
        stock: int = 10,
        name: str = "Air Max 90",
        **fields,
    ) -> Product:
        product = Product(
            name=name,
            description=fields.pop("description", "A sneaker"),
            price=Decimal(price),
            image_url=fields.pop("image_url", "https://img.example.com/shoe.png"),
            brand=fields.pop("brand", "Nike"),
            category=fields.pop("category", "Running"),
            count_in_stock=stock,
            **fields,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def add_cart_row(session):
    def _add(user: User, product: Product, quantity: int = 1, size=None, color=None):
        row = CartItem(
            user_id=user.id,
            product_id=product.id,
            quantity=quantity,
            size=size,
            color=color,
        )
        session.add(row)
        session.commit()
        session.refresh(row)
        return row

    return _add


@pytest.fixture
def customer(make_user):
    return make_user("user")


@pytest.fixture
def admin(make_user):
    return make_user("admin")


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def checkout_total(subtotal: str, discount_rate: str = "0") -> str:
    """Expected total: items - discount + shipping (10 unless > 100) + 13% tax."""
    cent = Decimal("0.01")
    sub = Decimal(subtotal)
    discount = (sub * Decimal(discount_rate)).quantize(cent, rounding=ROUND_HALF_UP)
    shipping = Decimal("0") if sub > Decimal("100") else Decimal("10")
    tax = ((sub - discount) * Decimal("0.13")).quantize(cent, rounding=ROUND_HALF_UP)
    return str((sub - discount + shipping + tax).quantize(cent))


def order_payload(items: list[dict], total_amount: str, **overrides) -> dict:
    payload = {
        "items": items,
        "shipping_address": "123 Main St",
        "shipping_city": "Kathmandu",
        "shipping_postal_code": "44600",
        "shipping_country": "Nepal",
        "payment_method": "eSewa",
        "total_amount": total_amount,
    }
    payload.update(overrides)
    return payload


def line(product: Product, quantity: int = 1, price: str | None = None, **variant) -> dict:
    return {
        "product_id": str(product.id),
        "quantity": quantity,
        "price": price if price is not None else str(product.effective_price),
        **variant,
    }


def stock_of(session: Session, product: Product) -> int:
    session.expire_all()
    return session.get(Product, product.id).count_in_stock
