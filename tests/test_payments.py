"""Tests for the eSewa payment hand-off and return-leg verification."""

import uuid
from decimal import Decimal

import pytest
import requests

from conftest import auth_headers, line, order_payload
from sneakerhead.core import esewa
from sneakerhead.core.errors import GatewayUnavailableError
from sneakerhead.core.esewa import EsewaClient
from sneakerhead.models.order import Order
from sneakerhead.routers import payments as payments_router
from sneakerhead.services.payment_service import (
    make_merchant_reference,
    parse_merchant_reference,
)


class FakeGateway(EsewaClient):
    """EsewaClient whose verification answer is set by the test."""

    def __init__(self, confirms: bool = True):
        super().__init__(
            merchant_id="EPAYTEST",
            payment_url="https://uat.esewa.com.np/epay/main",
            verify_url="https://uat.esewa.com.np/epay/transrec",
            success_url="http://localhost:3000/payment/success",
            failure_url="http://localhost:3000/payment/failure",
        )
        self.confirms = confirms
        self.calls = []

    def verify_transaction(self, merchant_reference, amount, reference_id):
        self.calls.append((merchant_reference, amount, reference_id))
        return self.confirms


@pytest.fixture
def gateway(monkeypatch):
    fake = FakeGateway()
    monkeypatch.setattr(payments_router.service, "gateway", fake)
    return fake


@pytest.fixture
def order(client, customer, make_product):
    """A pending order totalling 123.00."""
    product = make_product(price="100.00", stock=5)
    response = client.post(
        "/api/orders",
        json=order_payload([line(product, 1)], "123.00"),
        headers=auth_headers(customer),
    )
    assert response.status_code == 201
    return response.json()


def reference_for(order_id) -> str:
    return make_merchant_reference("SNEAKERHEAD", uuid.UUID(str(order_id)), 1700000000000)


def verify(client, order_id, amount="123.00", ref="0004VKB"):
    return client.post(
        "/api/payments/esewa/verify",
        json={
            "merchant_reference": reference_for(order_id),
            "amount": amount,
            "external_reference_id": ref,
        },
    )


def payment_state(session, order_id):
    session.expire_all()
    row = session.get(Order, uuid.UUID(order_id))
    return row.payment_status, row.payment_id


class TestCreatePayment:
    def test_builds_esewa_form(self, client, customer, order, gateway):
        response = client.post(
            "/api/payments/esewa/create",
            json={"order_id": order["id"], "description": "Sneakers"},
            headers=auth_headers(customer),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["payment_url"] == gateway.payment_url
        params = data["params"]
        assert Decimal(params["amt"]) == Decimal("123.00")
        assert Decimal(params["tAmt"]) == Decimal("123.00")
        assert params["pdc"] == params["psc"] == params["txAmt"] == "0"
        assert params["scd"] == "EPAYTEST"
        assert params["su"].endswith("/payment/success")
        assert params["fu"].endswith("/payment/failure")
        assert parse_merchant_reference("SNEAKERHEAD", params["pid"]) == uuid.UUID(order["id"])

    def test_other_users_order_forbidden(self, client, make_user, order, gateway):
        stranger = make_user()
        response = client.post(
            "/api/payments/esewa/create",
            json={"order_id": order["id"]},
            headers=auth_headers(stranger),
        )
        assert response.status_code == 403

    def test_amount_must_match_order_total(self, client, customer, order, gateway):
        response = client.post(
            "/api/payments/esewa/create",
            json={"order_id": order["id"], "amount": "1.00"},
            headers=auth_headers(customer),
        )
        assert response.status_code == 400

    def test_paid_order_rejected(self, client, customer, order, gateway):
        assert verify(client, order["id"]).status_code == 200

        response = client.post(
            "/api/payments/esewa/create",
            json={"order_id": order["id"]},
            headers=auth_headers(customer),
        )
        assert response.status_code == 409

    def test_missing_order(self, client, customer, gateway):
        response = client.post(
            "/api/payments/esewa/create",
            json={"order_id": str(uuid.uuid4())},
            headers=auth_headers(customer),
        )
        assert response.status_code == 404

    def test_requires_token(self, client, order):
        response = client.post("/api/payments/esewa/create", json={"order_id": order["id"]})
        assert response.status_code == 401


class TestVerifyPayment:
    def test_confirmed_payment_completes_order(self, client, session, order, gateway):
        response = verify(client, order["id"])

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Payment verified successfully"}
        assert payment_state(session, order["id"]) == ("completed", "0004VKB")
        ref, amount, rid = gateway.calls[0]
        assert ref == reference_for(order["id"])
        assert amount == Decimal("123.00")
        assert rid == "0004VKB"

    def test_replay_is_idempotent(self, client, session, order, gateway):
        verify(client, order["id"])
        response = verify(client, order["id"])

        assert response.status_code == 200
        assert response.json()["message"] == "Payment already verified"
        assert len(gateway.calls) == 1
        assert payment_state(session, order["id"]) == ("completed", "0004VKB")

    def test_second_reference_conflicts(self, client, session, order, gateway):
        verify(client, order["id"])
        response = verify(client, order["id"], ref="0009XYZ")

        assert response.status_code == 409
        assert payment_state(session, order["id"]) == ("completed", "0004VKB")

    def test_missing_reference_id(self, client, session, order, gateway):
        response = verify(client, order["id"], ref=None)

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert gateway.calls == []
        assert payment_state(session, order["id"]) == ("pending", None)

    def test_malformed_merchant_reference(self, client, gateway):
        response = client.post(
            "/api/payments/esewa/verify",
            json={"merchant_reference": "order-42", "amount": "1.00", "external_reference_id": "X"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid order ID format"

    def test_unknown_order(self, client, gateway):
        response = verify(client, uuid.uuid4())
        assert response.status_code == 404

    def test_amount_mismatch(self, client, session, order, gateway):
        response = verify(client, order["id"], amount="1.23")

        assert response.status_code == 400
        assert gateway.calls == []
        assert payment_state(session, order["id"]) == ("pending", None)

    def test_gateway_rejection_marks_failed(self, client, session, order, gateway):
        gateway.confirms = False

        response = verify(client, order["id"])

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert payment_state(session, order["id"]) == ("failed", None)

    def test_cancelled_order_is_not_marked_paid(
        self, client, session, admin, order, gateway, monkeypatch
    ):
        monkeypatch.setattr(payments_router.service, "verify_with_gateway", False)
        cancelled = client.patch(
            f"/api/orders/{order['id']}/status",
            json={"status": "cancelled"},
            headers=auth_headers(admin),
        )
        assert cancelled.status_code == 200

        response = verify(client, order["id"], ref="R1")

        assert response.status_code == 409
        assert response.json()["detail"] == "Order is cancelled"
        assert payment_state(session, order["id"]) == ("pending", None)

    def test_cancelled_order_cannot_start_payment(self, client, customer, admin, order, gateway):
        client.patch(
            f"/api/orders/{order['id']}/status",
            json={"status": "cancelled"},
            headers=auth_headers(admin),
        )

        response = client.post(
            "/api/payments/esewa/create",
            json={"order_id": order["id"]},
            headers=auth_headers(customer),
        )

        assert response.status_code == 409

    def test_retry_after_failure_can_complete(self, client, session, order, gateway):
        gateway.confirms = False
        verify(client, order["id"], ref="BAD")
        gateway.confirms = True

        response = verify(client, order["id"])

        assert response.status_code == 200
        assert payment_state(session, order["id"]) == ("completed", "0004VKB")

    def test_gateway_down(self, client, session, order, monkeypatch, gateway):
        def unreachable(*args, **kwargs):
            raise GatewayUnavailableError()

        monkeypatch.setattr(gateway, "verify_transaction", unreachable)

        response = verify(client, order["id"])

        assert response.status_code == 503
        assert payment_state(session, order["id"]) == ("pending", None)


class TestMerchantReference:
    def test_round_trip(self):
        order_id = uuid.uuid4()
        ref = make_merchant_reference("SNEAKERHEAD", order_id, 1700000000000)
        assert ref == f"SNEAKERHEAD-{order_id}-1700000000000"
        assert parse_merchant_reference("SNEAKERHEAD", ref) == order_id

    @pytest.mark.parametrize(
        "ref",
        [
            "",
            "SNEAKERHEAD-not-a-uuid-123",
            f"OTHERSHOP-{uuid.UUID(int=1)}-123",
            f"SNEAKERHEAD-{uuid.UUID(int=1)}",
            f"SNEAKERHEAD-{uuid.UUID(int=1)}-12x",
        ],
    )
    def test_rejects_malformed(self, ref):
        assert parse_merchant_reference("SNEAKERHEAD", ref) is None


class FakeResponse:
    def __init__(self, text: str, status_code: int = 200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class TestEsewaClient:
    @pytest.fixture
    def esewa_client(self):
        return EsewaClient(
            merchant_id="EPAYTEST",
            payment_url="https://uat.esewa.com.np/epay/main",
            verify_url="https://uat.esewa.com.np/epay/transrec",
            success_url="http://shop/payment/success",
            failure_url="http://shop/payment/failure",
            timeout=3,
        )

    def test_success_response(self, esewa_client, monkeypatch):
        sent = {}

        def fake_post(url, data, timeout):
            sent.update(url=url, data=data, timeout=timeout)
            return FakeResponse("<response>\n<response_code>\nSuccess\n</response_code>\n</response>")

        monkeypatch.setattr(esewa.requests, "post", fake_post)

        assert esewa_client.verify_transaction("SNEAKERHEAD-x-1", Decimal("123.00"), "0004VKB")
        assert sent["url"] == "https://uat.esewa.com.np/epay/transrec"
        assert sent["data"] == {
            "amt": "123.00",
            "rid": "0004VKB",
            "pid": "SNEAKERHEAD-x-1",
            "scd": "EPAYTEST",
        }
        assert sent["timeout"] == 3

    def test_failure_response(self, esewa_client, monkeypatch):
        monkeypatch.setattr(
            esewa.requests,
            "post",
            lambda *a, **kw: FakeResponse("<response><response_code>failure</response_code></response>"),
        )
        assert esewa_client.verify_transaction("ref", Decimal("1.00"), "rid") is False

    def test_unparseable_response(self, esewa_client, monkeypatch):
        monkeypatch.setattr(esewa.requests, "post", lambda *a, **kw: FakeResponse("<html>oops</html>"))
        assert esewa_client.verify_transaction("ref", Decimal("1.00"), "rid") is False

    def test_http_error_raises(self, esewa_client, monkeypatch):
        monkeypatch.setattr(esewa.requests, "post", lambda *a, **kw: FakeResponse("", 502))
        with pytest.raises(GatewayUnavailableError):
            esewa_client.verify_transaction("ref", Decimal("1.00"), "rid")

    def test_network_error_raises(self, esewa_client, monkeypatch):
        def boom(*args, **kwargs):
            raise requests.ConnectionError("connection refused")

        monkeypatch.setattr(esewa.requests, "post", boom)
        with pytest.raises(GatewayUnavailableError):
            esewa_client.verify_transaction("ref", Decimal("1.00"), "rid")

    def test_build_form(self, esewa_client):
        form = esewa_client.build_form("SNEAKERHEAD-x-1", Decimal("55.20"))
        assert form["amt"] == form["tAmt"] == "55.20"
        assert form["pid"] == "SNEAKERHEAD-x-1"
        assert form["su"] == "http://shop/payment/success"
