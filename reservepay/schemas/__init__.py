"""Pydantic schemas for request/response validation"""

from reservepay.schemas.auth import (
    Token,
    RefreshRequest,
    UserResponse,
)
from reservepay.schemas.reservation import (
    CustomerIn,
    PartyCounts,
    ReservationCreate,
    CancelRequest,
    CustomerResponse,
    ReservationResponse,
    ReservationDetail,
    ReservationCreated,
    ReservationEnvelope,
    CancelResponse,
)
from reservepay.schemas.checkout import (
    CheckoutRequest,
    CheckoutResponse,
    CheckoutProbe,
    PaymentConfirmRequest,
    ConfirmResponse,
)
from reservepay.schemas.admin import AdminOverrideRequest

__all__ = [
    "Token",
    "RefreshRequest",
    "UserResponse",
    "CustomerIn",
    "PartyCounts",
    "ReservationCreate",
    "CancelRequest",
    "CustomerResponse",
    "ReservationResponse",
    "ReservationDetail",
    "ReservationCreated",
    "ReservationEnvelope",
    "CancelResponse",
    "CheckoutRequest",
    "CheckoutResponse",
    "CheckoutProbe",
    "PaymentConfirmRequest",
    "ConfirmResponse",
    "AdminOverrideRequest",
]
