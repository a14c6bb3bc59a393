"""Reservation schemas"""

from datetime import date, datetime
from typing import Dict, Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field


class CustomerIn(BaseModel):
    """Customer details supplied with a booking"""
    email: EmailStr
    name: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=32)


class PartyCounts(BaseModel):
    """Guests per pricing category"""
    adult: int = 0
    student: int = 0
    child: int = 0
    infant: int = 0


class ReservationCreate(BaseModel):
    """Create reservation request; any client amount is ignored"""
    customer: CustomerIn
    date: date
    slot: str = Field(max_length=50)
    counts: PartyCounts
    notes: Optional[str] = None


class CancelRequest(BaseModel):
    """Customer lifecycle action"""
    action: str
    reason: Optional[str] = None


class CustomerResponse(BaseModel):
    """Customer response"""
    id: UUID
    name: str
    email: str
    phone: Optional[str]

    class Config:
        from_attributes = True


class ReservationResponse(BaseModel):
    """Reservation response"""
    id: UUID
    customer_id: UUID
    date: date
    slot: str
    party_counts: Dict[str, int]
    amount: int
    currency: str
    status: str
    payment_reference: Optional[str]
    confirmation_source: Optional[str]
    confirmed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ReservationDetail(ReservationResponse):
    """Reservation with its customer"""
    customer: CustomerResponse


class ReservationCreated(BaseModel):
    """New reservation plus the customer identity token that owns it"""
    ok: bool = True
    reservation: ReservationDetail
    access_token: str
    token_type: str = "bearer"


class ReservationEnvelope(BaseModel):
    ok: bool = True
    reservation: ReservationDetail


class CancelResponse(BaseModel):
    ok: bool = True
    already_cancelled: bool
    reservation: ReservationResponse
