"""Customer reservation endpoints"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from reservepay.api.auth import create_customer_token, get_requester_identity
from reservepay.api.deps import get_app_settings, get_notifier, get_pricing
from reservepay.config import Settings
from reservepay.database import get_db
from reservepay.errors import InvalidRequest
from reservepay.notify.dispatcher import NotificationDispatcher
from reservepay.schemas.reservation import (
    CancelRequest,
    CancelResponse,
    ReservationResponse,
    ReservationCreate,
    ReservationCreated,
    ReservationDetail,
    ReservationEnvelope,
)
from reservepay.services.booking import BookingService
from reservepay.services.cancellation import CancellationResolver, RequesterIdentity
from reservepay.services.pricing import PricingAuthority

router = APIRouter()


@router.post("", response_model=ReservationCreated, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    data: ReservationCreate,
    settings: Settings = Depends(get_app_settings),
    pricing: PricingAuthority = Depends(get_pricing),
    notifier: NotificationDispatcher = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """Create a pending reservation priced from its party counts"""
    reservation = await BookingService(db, pricing, notifier).create_reservation(
        email=data.customer.email,
        name=data.customer.name,
        phone=data.customer.phone,
        date=data.date,
        slot=data.slot,
        counts=data.counts.model_dump(),
        notes=data.notes,
    )
    return ReservationCreated(
        reservation=ReservationDetail.model_validate(reservation),
        access_token=create_customer_token(reservation.customer, settings),
    )


@router.get("/{reservation_id}", response_model=ReservationEnvelope)
async def get_reservation(
    reservation_id: UUID,
    requester: RequesterIdentity = Depends(get_requester_identity),
    pricing: PricingAuthority = Depends(get_pricing),
    notifier: NotificationDispatcher = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """Get one of the requester's reservations"""
    reservation = await BookingService(db, pricing, notifier).get_owned(reservation_id, requester)
    return ReservationEnvelope(reservation=ReservationDetail.model_validate(reservation))


@router.patch("/{reservation_id}", response_model=CancelResponse)
async def update_reservation(
    reservation_id: UUID,
    data: CancelRequest,
    requester: RequesterIdentity = Depends(get_requester_identity),
    notifier: NotificationDispatcher = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """Apply a customer action; only `cancel` is supported"""
    if data.action != "cancel":
        raise InvalidRequest("Unsupported action", {"action": data.action})

    result = await CancellationResolver(db, notifier).cancel(
        reservation_id,
        requester,
        reason=data.reason,
    )
    return CancelResponse(
        already_cancelled=not result.transitioned,
        reservation=ReservationResponse.model_validate(result.reservation),
    )
