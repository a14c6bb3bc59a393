"""Tests for checkout session creation"""

from urllib.parse import parse_qs, urlparse

import pytest
import stripe
from httpx import AsyncClient

from reservepay.models.reservation import ReservationStatus
from reservepay.services.checkout import build_metadata
from reservepay.store import ReservationStore
from uuid import uuid4


@pytest.mark.asyncio
async def test_checkout_probe_simulation(client: AsyncClient):
    response = await client.get("/checkout")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "mode": "simulation"}


@pytest.mark.asyncio
async def test_simulation_checkout_url(client: AsyncClient, pending_reservation):
    """Simulation mode returns a deterministic local mock-checkout URL"""
    response = await client.post("/checkout", json={"reservationId": str(pending_reservation.id)})

    assert response.status_code == 200
    data = response.json()
    assert data["mode"] == "simulation"

    url = urlparse(data["url"])
    query = parse_qs(url.query)
    assert f"{url.scheme}://{url.netloc}{url.path}" == "http://shop.test/mock-checkout"
    assert query["amount"] == ["7000"]
    assert query["currency"] == ["jpy"]
    assert query["status"] == ["success"]
    assert query["reservationId"] == [str(pending_reservation.id)]


@pytest.mark.asyncio
async def test_checkout_ignores_client_amount(client: AsyncClient, test_db, pending_reservation):
    """The charge comes from the stored reservation, never the request"""
    response = await client.post(
        "/checkout",
        json={
            "reservationId": str(pending_reservation.id),
            "amount": 1,
            "metadata": {"amount": "1", "currency": "usd"},
        },
    )

    assert response.status_code == 200
    query = parse_qs(urlparse(response.json()["url"]).query)
    assert query["amount"] == ["7000"]
    assert query["currency"] == ["jpy"]

    reloaded = await ReservationStore(test_db).get(pending_reservation.id)
    assert reloaded.amount == 7000


@pytest.mark.asyncio
async def test_checkout_decline_outcome(client: AsyncClient, pending_reservation):
    response = await client.post(
        "/checkout",
        json={"reservationId": str(pending_reservation.id), "metadata": {"outcome": "decline"}},
    )

    assert response.status_code == 200
    assert parse_qs(urlparse(response.json()["url"]).query)["status"] == ["cancel"]


@pytest.mark.asyncio
async def test_checkout_reservation_id_from_metadata(client: AsyncClient, pending_reservation):
    response = await client.post(
        "/checkout",
        json={"metadata": {"reservationId": str(pending_reservation.id)}},
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_checkout_requires_reservation_id(client: AsyncClient):
    response = await client.post("/checkout", json={"metadata": {}})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_request"


@pytest.mark.asyncio
async def test_checkout_unknown_reservation(client: AsyncClient):
    response = await client.post("/checkout", json={"reservationId": str(uuid4())})

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED])
async def test_checkout_rejects_non_pending(client: AsyncClient, test_customer, make_reservation, status):
    reservation = await make_reservation(test_customer, status=status)

    response = await client.post("/checkout", json={"reservationId": str(reservation.id)})

    assert response.status_code == 409
    assert response.json()["error"]["details"]["status"] == status.value


@pytest.mark.asyncio
async def test_checkout_rejects_zero_amount(client: AsyncClient, test_customer, make_reservation):
    reservation = await make_reservation(test_customer, amount=0)

    response = await client.post("/checkout", json={"reservationId": str(reservation.id)})

    assert response.status_code == 400


def test_build_metadata_server_keys_win():
    reservation_id = uuid4()
    metadata = build_metadata(
        reservation_id,
        {"reservationId": "someone-else", "via": "client", "plan": {"seats": 2}, "note": "hi", "skip": None},
    )

    assert metadata["reservationId"] == str(reservation_id)
    assert metadata["via"] == "checkout"
    assert metadata["plan"] == '{"seats": 2}'
    assert metadata["note"] == "hi"
    assert "skip" not in metadata



@pytest.mark.asyncio
async def test_live_checkout_creates_stripe_session(live_client: AsyncClient, monkeypatch, pending_reservation):
    """Live mode opens a Stripe Checkout Session for the stored amount"""
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return {"id": "cs_test_123", "url": "https://checkout.stripe.com/c/pay/cs_test_123"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    response = await live_client.post(
        "/checkout",
        json={"reservationId": str(pending_reservation.id), "amount": 50, "metadata": {"campaign": "autumn"}},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["mode"] == "live"
    assert data["url"] == "https://checkout.stripe.com/c/pay/cs_test_123"
    assert data["session_id"] == "cs_test_123"

    assert len(calls) == 1
    kwargs = calls[0]
    assert kwargs["api_key"] == "sk_test_123"
    assert kwargs["mode"] == "payment"
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 7000
    assert kwargs["line_items"][0]["price_data"]["currency"] == "jpy"
    assert kwargs["metadata"] == {
        "campaign": "autumn",
        "reservationId": str(pending_reservation.id),
        "via": "checkout",
    }
    assert kwargs["success_url"] == "http://shop.test/?status=success&session_id={CHECKOUT_SESSION_ID}"
    assert kwargs["cancel_url"] == "http://shop.test/?status=cancel"


@pytest.mark.asyncio
async def test_live_checkout_provider_error(live_client: AsyncClient, test_db, monkeypatch, pending_reservation):
    def failing_create(**kwargs):
        raise stripe.APIConnectionError("connection reset")

    monkeypatch.setattr(stripe.checkout.Session, "create", failing_create)

    response = await live_client.post("/checkout", json={"reservationId": str(pending_reservation.id)})

    assert response.status_code == 502
    body = response.json()
    assert body["error"]["code"] == "payment_provider_error"
    assert body["error"]["retryable"] is True

    reloaded = await ReservationStore(test_db).get(pending_reservation.id)
    assert reloaded.status == "PENDING"


@pytest.mark.asyncio
async def test_live_mode_without_secret_key_fails_closed(app, live_client: AsyncClient, live_settings, pending_reservation):
    """A live deployment missing credentials never falls back to simulation"""
    app.state.settings = live_settings.model_copy(update={"stripe_secret_key": ""})

    probe = await live_client.get("/checkout")
    create = await live_client.post("/checkout", json={"reservationId": str(pending_reservation.id)})

    assert probe.status_code == 500
    assert probe.json()["error"]["code"] == "payment_not_configured"
    assert create.status_code == 500


@pytest.mark.asyncio
async def test_live_redirect_confirm_uses_session(live_client: AsyncClient, monkeypatch, pending_reservation):
    """Live redirect-return retrieves the session and confirms with its payment intent"""
    def fake_retrieve(session_id, **kwargs):
        assert session_id == "cs_test_123"
        return {
            "id": "cs_test_123",
            "status": "complete",
            "payment_status": "paid",
            "metadata": {"reservationId": str(pending_reservation.id)},
            "payment_intent": {"id": "pi_live_1", "object": "payment_intent"},
        }

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", fake_retrieve)

    response = await live_client.get("/checkout/confirm", params={"session_id": "cs_test_123"})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "CONFIRMED"
    assert data["reservation"]["payment_reference"] == "pi_live_1"


@pytest.mark.asyncio
async def test_live_redirect_confirm_unpaid_session(live_client: AsyncClient, test_db, monkeypatch, pending_reservation):
    def fake_retrieve(session_id, **kwargs):
        return {
            "id": session_id,
            "status": "open",
            "payment_status": "unpaid",
            "metadata": {"reservationId": str(pending_reservation.id)},
        }

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", fake_retrieve)

    response = await live_client.get("/checkout/confirm", params={"session_id": "cs_test_open"})

    assert response.status_code == 400
    reloaded = await ReservationStore(test_db).get(pending_reservation.id)
    assert reloaded.status == "PENDING"


@pytest.mark.asyncio
async def test_live_redirect_ignores_simulation_params(live_client: AsyncClient, test_db, pending_reservation):
    """In live mode `status=success` alone cannot confirm anything"""
    response = await live_client.get(
        "/checkout/confirm",
        params={"status": "success", "reservationId": str(pending_reservation.id)},
    )

    assert response.status_code == 400
    reloaded = await ReservationStore(test_db).get(pending_reservation.id)
    assert reloaded.status == "PENDING"
