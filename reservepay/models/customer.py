"""Customer model"""

import uuid
from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.orm import relationship

from reservepay.database import Base
from reservepay.utils import now_utc


class Customer(Base):
    """Person who books reservations; email is the natural key"""
    __tablename__ = "customers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(32))

    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    # Relationships
    reservations = relationship("Reservation", back_populates="customer")
