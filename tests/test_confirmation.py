"""Tests for the confirmation resolver and its redirect/generic entry points"""

import pytest
from uuid import uuid4
from httpx import AsyncClient

from reservepay.errors import DataIntegrityError, ReservationNotFound, StatusConflict
from reservepay.models.reservation import ConfirmationSource, ReservationStatus
from reservepay.services.cancellation import CancellationResolver, RequesterIdentity
from reservepay.services.confirmation import ConfirmationResolver
from reservepay.store import ReservationStore, parse_status


class RacingStore(ReservationStore):
    """Runs another trigger between the resolver's read and its conditional update"""

    def __init__(self, db, before_update):
        super().__init__(db)
        self.before_update = before_update

    async def conditional_set_status(self, *args, **kwargs):
        await self.before_update()
        return await super().conditional_set_status(*args, **kwargs)


@pytest.mark.asyncio
async def test_confirm_pending_reservation(test_db, notifier, mailer, pending_reservation):
    """Pending reservation becomes CONFIRMED with the given reference"""
    result = await ConfirmationResolver(test_db, notifier).confirm(
        pending_reservation.id,
        payment_reference="pi_123",
        source=ConfirmationSource.WEBHOOK,
    )
    await notifier.drain()

    assert result.transitioned
    assert result.reservation.status == ReservationStatus.CONFIRMED.value
    assert result.reservation.payment_reference == "pi_123"
    assert result.reservation.confirmation_source == "webhook"
    assert result.reservation.confirmed_at is not None

    customer_mail = mailer.customer_messages()
    assert len(customer_mail) == 1
    assert customer_mail[0]["to"] == "hanako@example.com"
    assert "confirmed" in customer_mail[0]["subject"]
    assert customer_mail[0]["tags"]["reservationId"] == str(pending_reservation.id)


@pytest.mark.asyncio
async def test_redirect_then_webhook_confirms_once(test_db, notifier, mailer, pending_reservation):
    """Both triggers arriving leaves one confirmation, the first reference and one email"""
    resolver = ConfirmationResolver(test_db, notifier)

    first = await resolver.confirm(pending_reservation.id, "pi_first", ConfirmationSource.REDIRECT)
    second = await resolver.confirm(pending_reservation.id, "pi_second", ConfirmationSource.WEBHOOK)
    await notifier.drain()

    assert first.transitioned
    assert second.already_confirmed
    assert second.reservation.payment_reference == "pi_first"
    assert second.reservation.confirmation_source == "redirect"
    assert len(mailer.customer_messages()) == 1
    assert len(mailer.staff_messages()) == 1


@pytest.mark.asyncio
async def test_confirm_is_idempotent(test_db, notifier, mailer, pending_reservation):
    resolver = ConfirmationResolver(test_db, notifier)

    for _ in range(3):
        result = await resolver.confirm(pending_reservation.id, "pi_same")
        assert result.reservation.status == "CONFIRMED"
    await notifier.drain()

    assert len(mailer.customer_messages()) == 1


@pytest.mark.asyncio
async def test_confirm_cancelled_reservation_conflicts(test_db, notifier, mailer, test_customer, make_reservation):
    """A cancelled reservation is never revived by a late payment"""
    reservation = await make_reservation(test_customer, status=ReservationStatus.CANCELLED)

    with pytest.raises(StatusConflict) as exc_info:
        await ConfirmationResolver(test_db, notifier).confirm(reservation.id, "pi_late")
    await notifier.drain()

    assert exc_info.value.current_status == "CANCELLED"
    assert exc_info.value.status_code == 409
    reloaded = await ReservationStore(test_db).get(reservation.id)
    assert reloaded.status == "CANCELLED"
    assert reloaded.payment_reference is None
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_confirm_unknown_reservation(test_db, notifier):
    with pytest.raises(ReservationNotFound):
        await ConfirmationResolver(test_db, notifier).confirm(uuid4(), "pi_x")


@pytest.mark.asyncio
async def test_missing_reference_is_synthesized(test_db, notifier, pending_reservation):
    result = await ConfirmationResolver(test_db, notifier).confirm(pending_reservation.id)

    assert result.reservation.payment_reference.startswith("sim_")


@pytest.mark.asyncio
async def test_concurrent_confirm_loser_sees_already_confirmed(test_db, notifier, mailer, pending_reservation):
    """The trigger whose conditional update misses reports already-confirmed and sends nothing"""
    winner = ConfirmationResolver(test_db, notifier)
    loser = ConfirmationResolver(test_db, notifier)

    async def webhook_wins():
        await winner.confirm(pending_reservation.id, "pi_webhook", ConfirmationSource.WEBHOOK)

    loser.store = RacingStore(test_db, webhook_wins)

    result = await loser.confirm(pending_reservation.id, "pi_redirect", ConfirmationSource.REDIRECT)
    await notifier.drain()

    assert result.already_confirmed
    assert result.reservation.payment_reference == "pi_webhook"
    assert result.reservation.confirmation_source == "webhook"
    assert len(mailer.customer_messages()) == 1


@pytest.mark.asyncio
async def test_confirm_racing_cancel_conflicts(test_db, notifier, mailer, pending_reservation, test_customer):
    """Cancel landing between read and update wins; confirm reports a conflict"""
    resolver = ConfirmationResolver(test_db, notifier)

    async def customer_cancels():
        await CancellationResolver(test_db, notifier).cancel(
            pending_reservation.id,
            RequesterIdentity(subject=str(test_customer.id)),
            reason="Plans changed",
        )

    resolver.store = RacingStore(test_db, customer_cancels)

    with pytest.raises(StatusConflict) as exc_info:
        await resolver.confirm(pending_reservation.id, "pi_late")
    await notifier.drain()

    assert exc_info.value.current_status == "CANCELLED"
    reloaded = await ReservationStore(test_db).get(pending_reservation.id)
    assert reloaded.status == "CANCELLED"
    assert reloaded.payment_reference is None
    subjects = [m["subject"] for m in mailer.customer_messages()]
    assert len(subjects) == 1
    assert subjects[0].startswith("Reservation cancelled")


def test_unknown_status_is_data_integrity_error():
    with pytest.raises(DataIntegrityError):
        parse_status("REFUNDED")


@pytest.mark.asyncio
async def test_redirect_confirm_endpoint(client: AsyncClient, notifier, mailer, pending_reservation):
    """Simulation redirect-return confirms the reservation"""
    response = await client.get(
        "/checkout/confirm",
        params={"status": "success", "reservationId": str(pending_reservation.id)},
    )
    await notifier.drain()

    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["status"] == "CONFIRMED"
    assert data["already_confirmed"] is False
    assert data["reservation"]["confirmation_source"] == "redirect"
    assert data["reservation"]["payment_reference"].startswith("sim_")

    repeat = await client.get(
        "/checkout/confirm",
        params={"status": "success", "reservationId": str(pending_reservation.id)},
    )
    await notifier.drain()

    assert repeat.status_code == 200
    assert repeat.json()["already_confirmed"] is True
    assert len(mailer.customer_messages()) == 1


@pytest.mark.asyncio
async def test_redirect_confirm_without_success_does_not_mutate(client: AsyncClient, test_db, pending_reservation):
    response = await client.get(
        "/checkout/confirm",
        params={"status": "cancel", "reservationId": str(pending_reservation.id)},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_request"
    reloaded = await ReservationStore(test_db).get(pending_reservation.id)
    assert reloaded.status == "PENDING"


@pytest.mark.asyncio
async def test_redirect_confirm_cancelled_returns_conflict(client: AsyncClient, test_customer, make_reservation):
    reservation = await make_reservation(test_customer, status=ReservationStatus.CANCELLED)

    response = await client.get(
        "/checkout/confirm",
        params={"status": "success", "reservationId": str(reservation.id)},
    )

    assert response.status_code == 409
    body = response.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "conflict"
    assert body["error"]["details"]["status"] == "CANCELLED"


@pytest.mark.asyncio
async def test_payments_confirm_endpoint(client: AsyncClient, pending_reservation):
    """Generic confirm is open in simulation mode"""
    response = await client.post(
        "/payments/confirm",
        json={"reservationId": str(pending_reservation.id), "paymentIntentId": "pi_manual"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "CONFIRMED"
    assert data["reservation"]["payment_reference"] == "pi_manual"
    assert data["reservation"]["confirmation_source"] == "api"


@pytest.mark.asyncio
async def test_payments_confirm_unknown_reservation(client: AsyncClient):
    response = await client.post("/payments/confirm", json={"reservationId": str(uuid4())})

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


@pytest.mark.asyncio
async def test_payments_confirm_rejects_oversized_reference(client: AsyncClient, test_db, pending_reservation):
    response = await client.post(
        "/payments/confirm",
        json={"reservationId": str(pending_reservation.id), "paymentIntentId": "pi_" + "x" * 300},
    )

    assert response.status_code == 422
    reloaded = await ReservationStore(test_db).get(pending_reservation.id)
    assert reloaded.status == "PENDING"
    assert reloaded.payment_reference is None
