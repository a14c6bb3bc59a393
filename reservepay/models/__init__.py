"""Database models"""

from reservepay.models.customer import Customer
from reservepay.models.reservation import Reservation, ReservationStatus, ConfirmationSource
from reservepay.models.audit import AuditLog
from reservepay.models.user import User, UserRole

__all__ = [
    "Customer",
    "Reservation",
    "ReservationStatus",
    "ConfirmationSource",
    "AuditLog",
    "User",
    "UserRole",
]
