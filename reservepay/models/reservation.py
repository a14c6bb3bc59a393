"""Reservation model"""

import enum
import uuid
from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from reservepay.database import Base
from reservepay.utils import now_utc


class ReservationStatus(str, enum.Enum):
    """Lifecycle states; CANCELLED is terminal for customer-facing paths"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class ConfirmationSource(str, enum.Enum):
    """Trigger that performed the PENDING -> CONFIRMED transition"""
    REDIRECT = "redirect"
    WEBHOOK = "webhook"
    API = "api"


class Reservation(Base):
    """Booked slot with its charge and lifecycle status"""
    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'CANCELLED')",
            name="ck_reservations_status",
        ),
        CheckConstraint("amount >= 0", name="ck_reservations_amount"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True)

    # Booked occurrence
    date = Column(Date, nullable=False)
    slot = Column(String(50), nullable=False)

    # Party counts (only used to derive amount at creation)
    adult_count = Column(Integer, nullable=False, default=0)
    student_count = Column(Integer, nullable=False, default=0)
    child_count = Column(Integer, nullable=False, default=0)
    infant_count = Column(Integer, nullable=False, default=0)

    # Charge, fixed at creation
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="jpy")

    # Lifecycle
    status = Column(String(16), nullable=False, default=ReservationStatus.PENDING.value, index=True)
    payment_reference = Column(String(255))
    confirmation_source = Column(String(20))
    confirmed_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))

    # Notes
    notes = Column(Text)

    # Metadata
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    # Relationships
    customer = relationship("Customer", back_populates="reservations")

    @property
    def party_counts(self) -> dict:
        return {
            "adult": self.adult_count or 0,
            "student": self.student_count or 0,
            "child": self.child_count or 0,
            "infant": self.infant_count or 0,
        }
