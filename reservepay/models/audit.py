"""Audit log model"""

import uuid
from sqlalchemy import Column, String, DateTime, JSON, Uuid

from reservepay.database import Base
from reservepay.utils import now_utc


class AuditLog(Base):
    """Audit trail for privileged actions"""
    __tablename__ = "audit_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Actor information
    actor_id = Column(Uuid(as_uuid=True))  # User ID or null for system
    actor_type = Column(String(50))  # user, system
    actor_name = Column(String(255))

    # Action details
    action = Column(String(100), nullable=False)  # admin_override, ...
    resource_type = Column(String(50))
    resource_id = Column(Uuid(as_uuid=True))

    # Change data
    data_json = Column(JSON)  # {"before": {...}, "after": {...}}

    created_at = Column(DateTime(timezone=True), default=now_utc)
