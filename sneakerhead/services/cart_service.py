# sneakerhead/services/cart_service.py
import uuid
from decimal import Decimal

from sqlmodel import Session

from sneakerhead.core.errors import ForbiddenError, InsufficientStockError, NotFoundError
from sneakerhead.models.cart import CartItem
from sneakerhead.models.product import Product
from sneakerhead.repositories.cart_repo import CartRepository
from sneakerhead.repositories.product_repo import ProductRepository
from sneakerhead.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartItemRead,
    CartSummary,
)
from sneakerhead.schemas.product import ProductSummary


class CartService:
    """
    Business logic for the server-side cart.

    Responsibilities:
      - validate product existence
      - enforce quantity <= count_in_stock (advisory; the order
        placement re-checks atomically)
      - merge repeated adds of the same (product, size, color)
      - compute line totals and cart totals from current prices
    """

    def __init__(self, cart_repo: CartRepository, product_repo: ProductRepository):
        self.cart_repo = cart_repo
        self.product_repo = product_repo

    # ---- internal helpers ----

    def _get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.product_repo.get_by_id(session, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def _get_owned_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> CartItem:
        item = self.cart_repo.get_by_id(session, item_id)
        if not item:
            raise NotFoundError("Cart item not found")
        if item.user_id != user_id:
            raise ForbiddenError()
        return item

    @staticmethod
    def _check_stock(product: Product, quantity: int) -> None:
        if quantity > product.count_in_stock:
            raise InsufficientStockError(product.name, quantity, product.count_in_stock)

    # ---- public operations ----

    def get_cart_summary(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> CartSummary:
        """
        Return full cart summary:
          - list of CartItemRead (with product and line_total)
          - total_quantity
          - total_price
        """
        items = self.cart_repo.list_for_user(session, user_id)
        products = self.product_repo.get_many(session, list({it.product_id for it in items}))

        item_reads: list[CartItemRead] = []
        total_qty = 0
        total_price = Decimal("0.00")

        for it in items:
            product = products[it.product_id]
            line_total = product.effective_price * it.quantity
            total_qty += it.quantity
            total_price += line_total

            item_reads.append(
                CartItemRead(
                    id=it.id,
                    user_id=it.user_id,
                    product_id=it.product_id,
                    quantity=it.quantity,
                    size=it.size,
                    color=it.color,
                    product=ProductSummary.model_validate(product, from_attributes=True),
                    line_total=line_total,
                    created_at=it.created_at,
                )
            )

        return CartSummary(
            items=item_reads,
            total_quantity=total_qty,
            total_price=total_price,
        )

    def add_to_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: CartItemCreate,
    ) -> CartSummary:
        """
        Add a product variant to the user's cart.

        Rules:
          - product must exist
          - quantity (+ existing quantity of the same variant) <= stock
        """
        product = self._get_product(session, payload.product_id)
        self._check_stock(product, payload.quantity)

        existing = self.cart_repo.get_variant(
            session, user_id, payload.product_id, payload.size, payload.color
        )

        if existing:
            new_qty = existing.quantity + payload.quantity
            self._check_stock(product, new_qty)
            existing.quantity = new_qty
            self.cart_repo.update(session, existing)
        else:
            item = CartItem(
                user_id=user_id,
                product_id=payload.product_id,
                quantity=payload.quantity,
                size=payload.size,
                color=payload.color,
            )
            self.cart_repo.create(session, item)

        return self.get_cart_summary(session, user_id)

    def update_quantity(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
        payload: CartItemUpdate,
    ) -> CartSummary:
        """
        Set the quantity of a cart row.

        If quantity exceeds count_in_stock => 409.
        """
        item = self._get_owned_item(session, user_id, item_id)
        product = self._get_product(session, item.product_id)
        self._check_stock(product, payload.quantity)

        item.quantity = payload.quantity
        self.cart_repo.update(session, item)

        return self.get_cart_summary(session, user_id)

    def remove_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> CartSummary:
        item = self._get_owned_item(session, user_id, item_id)
        self.cart_repo.delete(session, item)
        return self.get_cart_summary(session, user_id)

    def clear_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> CartSummary:
        """
        Clear all items from the cart and return an empty summary.
        """
        self.cart_repo.clear_user_cart(session, user_id)
        return CartSummary(items=[], total_quantity=0, total_price=Decimal("0.00"))
