"""Checkout and payment confirmation schemas"""

from typing import Any, Dict, Optional
from uuid import UUID
from pydantic import BaseModel, Field

from reservepay.schemas.reservation import ReservationResponse


class CheckoutRequest(BaseModel):
    """Start a payment session; `amount` is accepted for compatibility and ignored"""
    reservation_id: Optional[UUID] = Field(default=None, alias="reservationId")
    metadata: Optional[Dict[str, Any]] = None
    amount: Optional[Any] = None

    class Config:
        populate_by_name = True


class CheckoutResponse(BaseModel):
    ok: bool = True
    mode: str
    url: str
    session_id: Optional[str] = None


class CheckoutProbe(BaseModel):
    ok: bool = True
    mode: str


class PaymentConfirmRequest(BaseModel):
    """Confirm a reservation by id"""
    reservation_id: UUID = Field(alias="reservationId")
    payment_reference: Optional[str] = Field(default=None, alias="paymentIntentId", max_length=255)

    class Config:
        populate_by_name = True


class ConfirmResponse(BaseModel):
    ok: bool = True
    status: str
    already_confirmed: bool
    reservation: ReservationResponse
