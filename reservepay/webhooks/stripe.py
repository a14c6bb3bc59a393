"""Stripe webhook handler"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from reservepay.api.deps import get_notifier, get_payment_gateway
from reservepay.database import get_db
from reservepay.errors import DataIntegrityError, InvalidRequest, ReservationNotFound, StatusConflict
from reservepay.models.reservation import ConfirmationSource
from reservepay.notify.dispatcher import NotificationDispatcher
from reservepay.services.confirmation import ConfirmationResolver
from reservepay.services.payments import PaymentGateway, payment_intent_id

router = APIRouter()
logger = structlog.get_logger()

CONFIRMING_EVENTS = {
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
}
PAID_STATUSES = {None, "paid", "no_payment_required"}


@router.post("")
async def handle_stripe_webhook(
    request: Request,
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationDispatcher = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """
    Confirm the reservation named in a completed checkout session.

    Events that can never succeed on re-delivery (unknown reservation,
    cancelled reservation, missing id) are acknowledged with 200. Transient
    store failures surface as 503 so Stripe retries.
    """
    payload = await request.body()
    event = gateway.parse_event(payload, request.headers.get("stripe-signature"))

    event_type = event.get("type")
    log = logger.bind(event_id=event.get("id"), event_type=event_type)

    if event_type not in CONFIRMING_EVENTS:
        log.info("Ignoring webhook event")
        return {"received": True, "ignored": True}

    data = event.get("data") or {}
    session = data.get("object") if isinstance(data, dict) else None
    if not isinstance(session, dict):
        raise InvalidRequest("Webhook event has no session object", {"event_type": event_type})

    if event_type == "checkout.session.completed" and session.get("payment_status") not in PAID_STATUSES:
        # Delayed payment methods complete first and pay later
        log.info("Checkout completed without payment yet", payment_status=session.get("payment_status"))
        return {"received": True, "ignored": True}

    metadata = session.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise InvalidRequest("Webhook session metadata must be an object", {"event_type": event_type})
    raw_id = metadata.get("reservationId") or session.get("client_reference_id")
    if not raw_id:
        log.warning("Webhook event without reservation id")
        return {"received": True, "applied": False}

    try:
        reservation_id = UUID(str(raw_id))
    except ValueError:
        log.warning("Webhook event with malformed reservation id", reservation_id=str(raw_id))
        return {"received": True, "applied": False}

    reference = payment_intent_id(session.get("payment_intent")) or session.get("id")

    try:
        result = await ConfirmationResolver(db, notifier).confirm(
            reservation_id,
            payment_reference=reference,
            source=ConfirmationSource.WEBHOOK,
        )
    except (ReservationNotFound, StatusConflict, DataIntegrityError, InvalidRequest) as e:
        log.warning(
            "Webhook event not applied",
            reservation_id=str(reservation_id),
            error=e.code,
            details=e.details,
        )
        return {"received": True, "applied": False}

    return {
        "received": True,
        "applied": True,
        "already_confirmed": result.already_confirmed,
        "status": result.reservation.status,
    }
