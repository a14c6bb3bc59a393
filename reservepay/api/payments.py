"""Generic confirm-by-id endpoint"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from reservepay.api.auth import get_optional_user
from reservepay.api.deps import get_app_settings, get_notifier
from reservepay.config import Settings
from reservepay.database import get_db
from reservepay.models.reservation import ConfirmationSource
from reservepay.models.user import User, UserRole
from reservepay.notify.dispatcher import NotificationDispatcher
from reservepay.schemas.checkout import ConfirmResponse, PaymentConfirmRequest
from reservepay.schemas.reservation import ReservationResponse
from reservepay.services.confirmation import ConfirmationResolver

router = APIRouter()


@router.post("/confirm", response_model=ConfirmResponse)
async def confirm_payment(
    data: PaymentConfirmRequest,
    settings: Settings = Depends(get_app_settings),
    current_user: Optional[User] = Depends(get_optional_user),
    notifier: NotificationDispatcher = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """Confirm a reservation; live deployments require an admin"""
    if settings.is_live_payments:
        if current_user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if not current_user.has_permission(UserRole.ADMIN):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

    result = await ConfirmationResolver(db, notifier).confirm(
        data.reservation_id,
        payment_reference=data.payment_reference,
        source=ConfirmationSource.API,
    )
    return ConfirmResponse(
        status=result.reservation.status,
        already_confirmed=result.already_confirmed,
        reservation=ReservationResponse.model_validate(result.reservation),
    )
