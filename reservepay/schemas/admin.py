"""Admin schemas"""

from typing import Optional
from pydantic import BaseModel

from reservepay.models.reservation import ReservationStatus


class AdminOverrideRequest(BaseModel):
    """Unconditional edit; only the fields actually sent are applied"""
    status: Optional[ReservationStatus] = None
    notes: Optional[str] = None
