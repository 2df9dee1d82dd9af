# sneakerhead/services/order_service.py
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from sneakerhead.core.config import Settings
from sneakerhead.core.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientStockError,
    NotFoundError,
    ShopError,
    StorageUnavailableError,
    ValidationFailureError,
)
from sneakerhead.models.order import Order, OrderItem
from sneakerhead.models.product import Product
from sneakerhead.models.user import User
from sneakerhead.repositories.cart_repo import CartRepository
from sneakerhead.repositories.order_repo import OrderRepository
from sneakerhead.repositories.product_repo import ProductRepository
from sneakerhead.repositories.user_repo import UserRepository
from sneakerhead.schemas.order import (
    OrderCreate,
    OrderItemRead,
    OrderPaymentUpdate,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from sneakerhead.schemas.product import ProductSummary
from sneakerhead.schemas.user import UserPublic

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Checkout coupons, as percentage of the items subtotal
COUPON_RATES: dict[str, Decimal] = {
    "WELCOME10": Decimal("0.10"),
    "SNEAKER20": Decimal("0.20"),
}

# Allowed orderStatus moves when strict transitions are on
STATUS_TRANSITIONS: dict[str, set[str]] = {
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}

# Statuses whose items are still on the shelf if the order is cancelled
RESTOCK_ON_CANCEL = {"processing", "shipped"}


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    tax: Decimal

    @property
    def total(self) -> Decimal:
        return _money(self.subtotal - self.discount + self.shipping + self.tax)


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Place an order atomically (stock check-and-decrement, order rows,
        cart cleanup) or not at all
      - Check submitted prices and totals against the catalog
      - Read orders back with items, products and owner profile
      - Admin status changes and manual payment confirmation
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        user_repo: UserRepository,
        settings: Settings,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.user_repo = user_repo
        self.enforce_catalog_pricing = settings.ENFORCE_CATALOG_PRICING
        self.strict_transitions = settings.STRICT_ORDER_STATUS_TRANSITIONS
        self.tax_rate = settings.TAX_RATE
        self.shipping_fee = settings.SHIPPING_FEE
        self.free_shipping_threshold = settings.FREE_SHIPPING_THRESHOLD

    # -------- Pricing --------

    def price_breakdown(
        self,
        subtotal: Decimal,
        coupon_code: str | None = None,
    ) -> PriceBreakdown:
        """
        Authoritative checkout arithmetic:

          shipping = 0 if subtotal > threshold else flat fee
          discount = coupon rate * subtotal
          tax      = tax rate * (subtotal - discount)
        """
        rate = Decimal("0")
        if coupon_code:
            if coupon_code not in COUPON_RATES:
                raise ValidationFailureError(f"Invalid coupon code: {coupon_code}")
            rate = COUPON_RATES[coupon_code]

        discount = _money(subtotal * rate)
        shipping = (
            Decimal("0.00")
            if subtotal > self.free_shipping_threshold
            else self.shipping_fee
        )
        tax = _money((subtotal - discount) * self.tax_rate)
        return PriceBreakdown(
            subtotal=_money(subtotal),
            discount=discount,
            shipping=shipping,
            tax=tax,
        )

    # -------- User-facing operations --------

    def place_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: OrderCreate,
    ) -> OrderWithItemsRead:
        """
        Create an order from the submitted line items in one transaction.

        Steps:
          1. Create Order row (payment 'pending', status 'processing').
          2. For each line item:
             - product must exist
             - submitted unit price must match the catalog (if enforced)
             - atomic conditional stock decrement
             - stage an OrderItem snapshot
          3. Check the submitted total against the catalog and store the
             catalog figure (if enforced).
          4. Insert OrderItems, drop the matching cart rows.
          5. Commit and return the full order.

        Any failure rolls everything back.
        """
        try:
            order = Order(
                user_id=user_id,
                total_amount=payload.total_amount,
                shipping_address=payload.shipping_address,
                shipping_city=payload.shipping_city,
                shipping_postal_code=payload.shipping_postal_code,
                shipping_country=payload.shipping_country,
                payment_method=payload.payment_method,
                payment_status="pending",
                order_status="processing",
            )
            order = self.order_repo.create_order(session, order)

            order_items: list[OrderItem] = []
            subtotal = Decimal("0")

            for line in payload.items:
                product = self.product_repo.get_by_id(session, line.product_id)
                if product is None:
                    raise NotFoundError(f"Product with ID {line.product_id} not found")

                unit_price = product.effective_price
                if self.enforce_catalog_pricing and line.price != unit_price:
                    raise ValidationFailureError(
                        f"Price of {product.name} is {unit_price}, not {line.price}"
                    )

                if not self.product_repo.decrement_stock(
                    session, product.id, line.quantity
                ):
                    session.refresh(product)
                    raise InsufficientStockError(
                        product.name, line.quantity, product.count_in_stock
                    )

                subtotal += unit_price * line.quantity
                order_items.append(
                    OrderItem(
                        order_id=order.id,
                        product_id=product.id,
                        quantity=line.quantity,
                        price=line.price,
                        size=line.size,
                        color=line.color,
                    )
                )

            if self.enforce_catalog_pricing:
                expected = self.price_breakdown(subtotal, payload.coupon_code).total
                if abs(expected - payload.total_amount) > CENT:
                    raise ValidationFailureError(
                        f"Order total should be {expected}, got {payload.total_amount}"
                    )
                # within a cent: keep the server's figure
                order.total_amount = expected

            order_items = self.order_repo.create_items(session, order_items)
            self.cart_repo.delete_variants(
                session,
                user_id,
                [(it.product_id, it.size, it.color) for it in order_items],
            )

            session.commit()
        except ShopError as exc:
            session.rollback()
            logger.info("Order rejected for user %s: %s", user_id, exc)
            raise
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Order placement failed for user %s", user_id)
            raise StorageUnavailableError()

        logger.info(
            "Order %s placed by user %s (%d items, total %s)",
            order.id,
            user_id,
            len(order_items),
            order.total_amount,
        )
        return self._complete_order(session, order.id)

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderWithItemsRead]:
        """
        List orders for the given user, newest first, with items.
        """
        orders = self.order_repo.list_for_user(session, user_id, skip, limit)
        return self._build_many(session, orders)

    def get_order(
        self,
        session: Session,
        caller: User,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        Get a single order for its owner or an admin.

        - 404 if the order does not exist.
        - 403 if the caller is neither owner nor admin.
        """
        order = self._get_order_or_404(session, order_id)
        if order.user_id != caller.id and caller.role != "admin":
            raise ForbiddenError()
        return self._complete_order(session, order.id)

    # -------- Admin operations --------

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderWithItemsRead]:
        """
        List all orders (admin only).
        """
        orders = self.order_repo.list_all(session, skip, limit)
        return self._build_many(session, orders)

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> OrderWithItemsRead:
        """
        Admin-only status update.

        Strict mode checks STATUS_TRANSITIONS:

          processing -> shipped, cancelled
          shipped    -> delivered, cancelled
          delivered  -> (terminal)
          cancelled  -> (terminal)

        Permissive mode accepts any move except leaving 'cancelled': the
        stock released on cancellation may already have been sold again.

        Entering 'delivered' stamps delivered_at. Entering 'cancelled' from
        'processing' or 'shipped' puts every line item's quantity back in
        stock; delivered goods are not restocked.
        """
        order = self._get_order_or_404(session, order_id)

        current = order.order_status
        new = payload.status

        if current == new:
            return self._complete_order(session, order.id)

        if current == "cancelled":
            raise ValidationFailureError(f"Invalid status transition: {current} -> {new}")
        if self.strict_transitions and new not in STATUS_TRANSITIONS.get(current, set()):
            raise ValidationFailureError(f"Invalid status transition: {current} -> {new}")

        try:
            order.order_status = new
            if new == "delivered":
                order.delivered_at = datetime.now(timezone.utc)
            if new == "cancelled" and current in RESTOCK_ON_CANCEL:
                for item in self.order_repo.list_items_for_order(session, order.id):
                    self.product_repo.restore_stock(session, item.product_id, item.quantity)
            self.order_repo.update_order(session, order)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Status update failed for order %s", order_id)
            raise StorageUnavailableError()

        logger.info("Order %s status %s -> %s", order_id, current, new)
        return self._complete_order(session, order_id)

    def mark_paid(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderPaymentUpdate,
    ) -> OrderWithItemsRead:
        """
        Record a payment confirmed outside the gateway (admin only).

        Repeating the call with the same payment_id is a no-op; a different
        payment_id on an already paid order is a conflict, and so is paying
        a cancelled order.
        """
        order = self._get_order_or_404(session, order_id)

        if order.payment_status == "completed":
            if order.payment_id != payload.payment_id:
                raise ConflictError("Order is already paid with a different payment id")
            return self._complete_order(session, order.id)

        if order.order_status == "cancelled":
            raise ConflictError("Order is cancelled")

        try:
            order.payment_status = "completed"
            order.payment_id = payload.payment_id
            self.order_repo.update_order(session, order)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Manual payment failed for order %s", order_id)
            raise StorageUnavailableError()

        logger.info("Order %s manually marked paid (%s)", order_id, payload.payment_id)
        return self._complete_order(session, order_id)

    # -------- Helper DTO builders --------

    def _get_order_or_404(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def _complete_order(self, session: Session, order_id: uuid.UUID) -> OrderWithItemsRead:
        order = self._get_order_or_404(session, order_id)
        return self._build_many(session, [order])[0]

    def _build_many(
        self,
        session: Session,
        orders: list[Order],
    ) -> list[OrderWithItemsRead]:
        """
        Batch-load items, products and owners, then compose DTOs.
        """
        order_ids = [o.id for o in orders]
        items_by_order = self.order_repo.list_items_for_orders(session, order_ids)

        product_ids = list(
            {it.product_id for items in items_by_order.values() for it in items}
        )
        products = self.product_repo.get_many(session, product_ids)
        users = self.user_repo.get_many(session, list({o.user_id for o in orders}))

        return [
            self._build_order_with_items_dto(
                order,
                items_by_order.get(order.id, []),
                products,
                users.get(order.user_id),
            )
            for order in orders
        ]

    def _build_order_with_items_dto(
        self,
        order: Order,
        items: list[OrderItem],
        products: dict[uuid.UUID, Product],
        owner: User | None,
    ) -> OrderWithItemsRead:
        item_dtos: list[OrderItemRead] = []
        for it in items:
            product = products.get(it.product_id)
            item_dtos.append(
                OrderItemRead(
                    id=it.id,
                    order_id=it.order_id,
                    product_id=it.product_id,
                    quantity=it.quantity,
                    price=it.price,
                    size=it.size,
                    color=it.color,
                    product=(
                        ProductSummary.model_validate(product, from_attributes=True)
                        if product is not None
                        else None
                    ),
                )
            )

        return OrderWithItemsRead(
            id=order.id,
            user_id=order.user_id,
            total_amount=order.total_amount,
            shipping_address=order.shipping_address,
            shipping_city=order.shipping_city,
            shipping_postal_code=order.shipping_postal_code,
            shipping_country=order.shipping_country,
            payment_method=order.payment_method,
            payment_status=order.payment_status,  # Literal
            order_status=order.order_status,  # Literal
            payment_id=order.payment_id,
            delivered_at=order.delivered_at,
            created_at=order.created_at,
            items=item_dtos,
            user=(
                UserPublic.model_validate(owner, from_attributes=True)
                if owner is not None
                else None
            ),
        )
