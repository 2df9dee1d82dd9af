# sneakerhead/seed.py
"""
Reset the database and load demo accounts and products.

    python -m sneakerhead.seed

Drops every table first; never point this at production.
"""
import logging
from decimal import Decimal

from sqlmodel import SQLModel, Session

from sneakerhead.core.auth import hash_password
from sneakerhead.database import engine
from sneakerhead.models.cart import CartItem  # noqa: F401
from sneakerhead.models.order import Order, OrderItem  # noqa: F401
from sneakerhead.models.product import Product, Review  # noqa: F401
from sneakerhead.models.user import User

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {
        "username": "admin",
        "email": "admin@sneakerhead.com",
        "password": "admin123",
        "full_name": "Admin User",
        "role": "admin",
    },
    {
        "username": "user",
        "email": "user@example.com",
        "password": "user123",
        "full_name": "Regular User",
        "address": "123 Main St, Kathmandu",
        "phone": "9876543210",
        "role": "user",
    },
]

DEMO_PRODUCTS = [
    {
        "name": "Nike Air Max 270",
        "description": "Visible Air cushioning under every step.",
        "price": Decimal("150.00"),
        "discount_price": Decimal("129.99"),
        "image_url": "https://static.nike.com/a/images/air-max-270-shoes.png",
        "brand": "Nike",
        "category": "Running",
        "count_in_stock": 25,
        "is_featured": True,
        "is_new": True,
        "sizes": ["7", "8", "9", "10", "11"],
        "colors": ["Black", "White", "Red"],
    },
    {
        "name": "Adidas Ultraboost 21",
        "description": "Responsive Boost midsole with a Primeknit upper.",
        "price": Decimal("180.00"),
        "image_url": "https://assets.adidas.com/images/ultraboost.jpg",
        "brand": "Adidas",
        "category": "Running",
        "count_in_stock": 15,
        "is_featured": True,
        "is_new": True,
        "sizes": ["7", "8", "9", "10", "11", "12"],
        "colors": ["Black", "White", "Blue"],
    },
    {
        "name": "Jordan 1 Retro High",
        "description": "The original high-top, in premium leather.",
        "price": Decimal("170.00"),
        "image_url": "https://static.nike.com/a/images/air-jordan-1-high-og.png",
        "brand": "Jordan",
        "category": "Basketball",
        "count_in_stock": 10,
        "is_featured": True,
        "sizes": ["8", "9", "10", "11", "12"],
        "colors": ["Red", "Black", "White"],
    },
    {
        "name": "Puma RS-X",
        "description": "Chunky running-system silhouette.",
        "price": Decimal("110.00"),
        "discount_price": Decimal("89.99"),
        "image_url": "https://images.puma.com/image/upload/rs-x.png",
        "brand": "Puma",
        "category": "Casual",
        "count_in_stock": 20,
        "is_new": True,
        "sizes": ["7", "8", "9", "10", "11"],
        "colors": ["White", "Blue", "Yellow"],
    },
    {
        "name": "New Balance 574",
        "description": "Suede and mesh everyday classic.",
        "price": Decimal("80.00"),
        "image_url": "https://nb.scene7.com/is/image/NB/ml574evn.jpg",
        "brand": "New Balance",
        "category": "Casual",
        "count_in_stock": 30,
        "sizes": ["7", "8", "9", "10", "11", "12"],
        "colors": ["Grey", "Navy", "Green"],
    },
]


def seed(session: Session) -> None:
    for data in DEMO_USERS:
        data = dict(data)
        password = data.pop("password")
        session.add(User(password_hash=hash_password(password), **data))

    for data in DEMO_PRODUCTS:
        session.add(Product(**data))

    session.commit()


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    logger.info("Tables dropped and recreated.")

    with Session(engine) as session:
        seed(session)

    logger.info(
        "Seeded %d users and %d products.", len(DEMO_USERS), len(DEMO_PRODUCTS)
    )


if __name__ == "__main__":
    main()
