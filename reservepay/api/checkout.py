"""Checkout endpoints: session creation and the redirect-return confirm"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from reservepay.api.deps import get_notifier, get_payment_gateway, get_pricing
from reservepay.database import get_db
from reservepay.errors import InvalidRequest
from reservepay.models.reservation import ConfirmationSource
from reservepay.notify.dispatcher import NotificationDispatcher
from reservepay.schemas.checkout import (
    CheckoutProbe,
    CheckoutRequest,
    CheckoutResponse,
    ConfirmResponse,
)
from reservepay.schemas.reservation import ReservationResponse
from reservepay.services.checkout import CheckoutSessionInitiator
from reservepay.services.confirmation import ConfirmationResolver
from reservepay.services.payments import PaymentGateway
from reservepay.services.pricing import PricingAuthority

router = APIRouter()
logger = structlog.get_logger()


def _parse_reservation_id(value: Optional[str]) -> UUID:
    if not value:
        raise InvalidRequest("reservationId is required")
    try:
        return UUID(str(value))
    except ValueError:
        raise InvalidRequest("reservationId is not a valid id", {"reservationId": str(value)})


@router.get("", response_model=CheckoutProbe)
async def checkout_probe(
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Report the configured payment mode (fails if live mode is misconfigured)"""
    return CheckoutProbe(mode=gateway.mode)


@router.post("", response_model=CheckoutResponse)
async def create_checkout(
    data: CheckoutRequest,
    gateway: PaymentGateway = Depends(get_payment_gateway),
    pricing: PricingAuthority = Depends(get_pricing),
    db: AsyncSession = Depends(get_db),
):
    """Open a payment session for a pending reservation"""
    metadata = data.metadata or {}
    reservation_id = data.reservation_id or _parse_reservation_id(metadata.get("reservationId"))

    if data.amount is not None:
        logger.info("Ignoring client-supplied amount", reservation_id=str(reservation_id))

    session = await CheckoutSessionInitiator(db, gateway, pricing).create_session(reservation_id, metadata)
    return CheckoutResponse(mode=gateway.mode, url=session.url, session_id=session.session_id)


@router.get("/confirm", response_model=ConfirmResponse)
async def confirm_checkout(
    status: Optional[str] = Query(default=None),
    reservation_id: Optional[str] = Query(default=None, alias="reservationId"),
    session_id: Optional[str] = Query(default=None),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationDispatcher = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """Customer returned from the checkout page"""
    if gateway.mode == "live":
        if not session_id:
            raise InvalidRequest("session_id is required")
        completed = await gateway.retrieve_completed_checkout(session_id)
        target = _parse_reservation_id(completed.reservation_id)
        reference = completed.payment_reference
    else:
        if status != "success":
            raise InvalidRequest("Checkout was not completed", {"status": status})
        target = _parse_reservation_id(reservation_id)
        reference = None

    result = await ConfirmationResolver(db, notifier).confirm(
        target,
        payment_reference=reference,
        source=ConfirmationSource.REDIRECT,
    )
    return ConfirmResponse(
        status=result.reservation.status,
        already_confirmed=result.already_confirmed,
        reservation=ReservationResponse.model_validate(result.reservation),
    )
