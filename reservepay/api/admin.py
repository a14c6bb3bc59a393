"""Admin reservation endpoints"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from reservepay.api.auth import require_role
from reservepay.database import get_db
from reservepay.errors import ReservationNotFound
from reservepay.models.user import User, UserRole
from reservepay.schemas.admin import AdminOverrideRequest
from reservepay.schemas.reservation import ReservationDetail, ReservationEnvelope
from reservepay.services.admin_override import apply_override
from reservepay.store import ReservationStore

router = APIRouter()


@router.get("/reservations/{reservation_id}", response_model=ReservationEnvelope)
async def get_reservation(
    reservation_id: UUID,
    current_user: User = Depends(require_role(UserRole.STAFF)),
    db: AsyncSession = Depends(get_db),
):
    """Get any reservation with its customer"""
    reservation = await ReservationStore(db).get(reservation_id, with_customer=True)
    if reservation is None:
        raise ReservationNotFound(reservation_id)
    return ReservationEnvelope(reservation=ReservationDetail.model_validate(reservation))


@router.patch("/reservations/{reservation_id}", response_model=ReservationEnvelope)
async def override_reservation(
    reservation_id: UUID,
    data: AdminOverrideRequest,
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Set status and/or notes unconditionally (audited, no notification)"""
    reservation = await apply_override(
        db,
        reservation_id,
        current_user,
        data.model_dump(exclude_unset=True),
    )
    return ReservationEnvelope(reservation=ReservationDetail.model_validate(reservation))
