"""Tests for order retrieval, status administration and manual payment."""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from conftest import auth_headers, checkout_total, line, order_payload, stock_of
from sneakerhead.models.order import Order
from sneakerhead.routers import orders as orders_router


@pytest.fixture
def placed_order(client, customer, make_product):
    """An order for 2 units of a 50.00 product; stock left at 3."""
    product = make_product(price="50.00", stock=5)
    response = client.post(
        "/api/orders",
        json=order_payload([line(product, 2)], checkout_total("100.00")),
        headers=auth_headers(customer),
    )
    assert response.status_code == 201
    return response.json(), product


def set_status(client, admin, order_id, status):
    return client.patch(
        f"/api/orders/{order_id}/status",
        json={"status": status},
        headers=auth_headers(admin),
    )


class TestGetOrder:
    def test_owner_can_read(self, client, customer, placed_order):
        order, _ = placed_order
        response = client.get(f"/api/orders/{order['id']}", headers=auth_headers(customer))
        assert response.status_code == 200
        assert response.json()["id"] == order["id"]

    def test_other_user_forbidden(self, client, make_user, placed_order):
        order, _ = placed_order
        stranger = make_user()
        response = client.get(f"/api/orders/{order['id']}", headers=auth_headers(stranger))
        assert response.status_code == 403

    def test_admin_can_read(self, client, admin, placed_order):
        order, _ = placed_order
        response = client.get(f"/api/orders/{order['id']}", headers=auth_headers(admin))
        assert response.status_code == 200

    def test_missing_order(self, client, customer):
        response = client.get(f"/api/orders/{uuid.uuid4()}", headers=auth_headers(customer))
        assert response.status_code == 404

    def test_requires_token(self, client, placed_order):
        order, _ = placed_order
        assert client.get(f"/api/orders/{order['id']}").status_code == 401


class TestListOrders:
    def test_my_orders_only_lists_own(self, client, customer, make_user, make_product, placed_order):
        order, _ = placed_order
        other = make_user()
        product = make_product(price="20.00", stock=5, name="Other Shoe")
        client.post(
            "/api/orders",
            json=order_payload([line(product, 1)], checkout_total("20.00")),
            headers=auth_headers(other),
        )

        response = client.get("/api/orders/me", headers=auth_headers(customer))

        assert response.status_code == 200
        assert [o["id"] for o in response.json()] == [order["id"]]

    def test_admin_lists_everything(self, client, admin, make_user, make_product, placed_order):
        other = make_user()
        product = make_product(price="20.00", stock=5, name="Other Shoe")
        client.post(
            "/api/orders",
            json=order_payload([line(product, 1)], checkout_total("20.00")),
            headers=auth_headers(other),
        )

        response = client.get("/api/orders", headers=auth_headers(admin))

        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_customer_cannot_list_all(self, client, customer):
        response = client.get("/api/orders", headers=auth_headers(customer))
        assert response.status_code == 403


class TestStatusUpdates:
    def test_happy_path_to_delivered(self, client, admin, placed_order):
        order, _ = placed_order

        shipped = set_status(client, admin, order["id"], "shipped")
        assert shipped.status_code == 200
        assert shipped.json()["delivered_at"] is None

        delivered = set_status(client, admin, order["id"], "delivered")
        assert delivered.status_code == 200
        assert delivered.json()["order_status"] == "delivered"
        assert delivered.json()["delivered_at"] is not None

    def test_skipping_shipped_is_rejected(self, client, admin, placed_order):
        order, _ = placed_order
        response = set_status(client, admin, order["id"], "delivered")
        assert response.status_code == 400
        assert "processing -> delivered" in response.json()["detail"]

    def test_terminal_states_are_final(self, client, admin, placed_order):
        order, _ = placed_order
        assert set_status(client, admin, order["id"], "cancelled").status_code == 200
        assert set_status(client, admin, order["id"], "processing").status_code == 400

    def test_same_status_is_noop(self, client, admin, placed_order):
        order, _ = placed_order
        response = set_status(client, admin, order["id"], "processing")
        assert response.status_code == 200
        assert response.json()["order_status"] == "processing"

    def test_unknown_status_value(self, client, admin, placed_order):
        order, _ = placed_order
        assert set_status(client, admin, order["id"], "lost").status_code == 422

    def test_cancel_restores_stock(self, client, session, admin, placed_order):
        order, product = placed_order
        assert stock_of(session, product) == 3

        response = set_status(client, admin, order["id"], "cancelled")

        assert response.status_code == 200
        assert stock_of(session, product) == 5

    def test_permissive_mode_allows_any_move(self, client, admin, placed_order, monkeypatch):
        monkeypatch.setattr(orders_router.service, "strict_transitions", False)
        order, _ = placed_order

        response = set_status(client, admin, order["id"], "delivered")

        assert response.status_code == 200
        assert response.json()["delivered_at"] is not None

    def test_cancelled_order_cannot_be_reopened(
        self, client, session, admin, placed_order, monkeypatch
    ):
        monkeypatch.setattr(orders_router.service, "strict_transitions", False)
        order, product = placed_order

        assert set_status(client, admin, order["id"], "cancelled").status_code == 200
        reopened = set_status(client, admin, order["id"], "processing")
        again = set_status(client, admin, order["id"], "cancelled")

        assert reopened.status_code == 400
        assert again.status_code == 200
        assert again.json()["order_status"] == "cancelled"
        assert stock_of(session, product) == 5

    def test_cancelling_delivered_order_keeps_stock(
        self, client, session, admin, placed_order, monkeypatch
    ):
        monkeypatch.setattr(orders_router.service, "strict_transitions", False)
        order, product = placed_order

        assert set_status(client, admin, order["id"], "delivered").status_code == 200
        assert set_status(client, admin, order["id"], "cancelled").status_code == 200

        assert stock_of(session, product) == 3

    def test_cancel_from_shipped_restores_stock(self, client, session, admin, placed_order):
        order, product = placed_order

        set_status(client, admin, order["id"], "shipped")
        assert set_status(client, admin, order["id"], "cancelled").status_code == 200

        assert stock_of(session, product) == 5

    def test_customer_cannot_change_status(self, client, customer, placed_order):
        order, _ = placed_order
        assert set_status(client, customer, order["id"], "shipped").status_code == 403

    def test_missing_order(self, client, admin):
        assert set_status(client, admin, uuid.uuid4(), "shipped").status_code == 404


class TestManualPayment:
    def test_mark_paid_is_idempotent(self, client, admin, placed_order):
        order, _ = placed_order
        url = f"/api/orders/{order['id']}/pay"

        first = client.put(url, json={"payment_id": "CASH-001"}, headers=auth_headers(admin))
        again = client.put(url, json={"payment_id": "CASH-001"}, headers=auth_headers(admin))

        assert first.status_code == 200
        assert first.json()["payment_status"] == "completed"
        assert first.json()["payment_id"] == "CASH-001"
        assert again.status_code == 200
        assert Decimal(again.json()["total_amount"]) == Decimal(order["total_amount"])

    def test_different_payment_id_conflicts(self, client, admin, placed_order):
        order, _ = placed_order
        url = f"/api/orders/{order['id']}/pay"

        client.put(url, json={"payment_id": "CASH-001"}, headers=auth_headers(admin))
        response = client.put(url, json={"payment_id": "CASH-002"}, headers=auth_headers(admin))

        assert response.status_code == 409

    def test_customer_cannot_mark_paid(self, client, customer, placed_order):
        order, _ = placed_order
        response = client.put(
            f"/api/orders/{order['id']}/pay",
            json={"payment_id": "SELF"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 403

    def test_cancelled_order_cannot_be_paid(self, client, admin, placed_order):
        order, _ = placed_order
        set_status(client, admin, order["id"], "cancelled")

        response = client.put(
            f"/api/orders/{order['id']}/pay",
            json={"payment_id": "CASH-001"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 409
        assert response.json()["detail"] == "Order is cancelled"
        fetched = client.get(f"/api/orders/{order['id']}", headers=auth_headers(admin))
        assert fetched.json()["payment_status"] == "pending"

    def test_storage_failure_leaves_order_unpaid(
        self, client, session, admin, placed_order, monkeypatch
    ):
        order, _ = placed_order

        def broken_update(*args, **kwargs):
            raise OperationalError("UPDATE orders", {}, Exception("database is locked"))

        monkeypatch.setattr(orders_router.order_repo, "update_order", broken_update)

        response = client.put(
            f"/api/orders/{order['id']}/pay",
            json={"payment_id": "CASH-001"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 503
        assert response.json()["error_type"] == "StorageUnavailableError"
        session.expire_all()
        row = session.get(Order, uuid.UUID(order["id"]))
        assert (row.payment_status, row.payment_id) == ("pending", None)
