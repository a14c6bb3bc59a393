"""
Admin override.

Privileged, unconditional edit of a reservation's status and notes. It bypasses
the conditional update the resolvers use, sends no customer notification and
writes an audit row in the same transaction.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from reservepay.errors import InvalidRequest, ReservationNotFound
from reservepay.models.audit import AuditLog
from reservepay.models.reservation import Reservation, ReservationStatus
from reservepay.models.user import User
from reservepay.store import store_errors
from reservepay.utils import now_utc

logger = structlog.get_logger()

OVERRIDABLE_FIELDS = ("status", "notes")


async def _load(db: AsyncSession, reservation_id: UUID) -> Optional[Reservation]:
    result = await db.execute(
        select(Reservation)
        .where(Reservation.id == reservation_id)
        .options(selectinload(Reservation.customer))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def apply_override(
    db: AsyncSession,
    reservation_id: UUID,
    actor: User,
    changes: Dict[str, Any],
) -> Reservation:
    """Apply `changes` (any subset of status/notes) unconditionally"""
    unknown = set(changes) - set(OVERRIDABLE_FIELDS)
    if unknown:
        raise InvalidRequest("Unsupported override fields", {"fields": sorted(unknown)})

    async with store_errors("admin_override"):
        reservation = await _load(db, reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)

        values: Dict[str, Any] = {}
        if "status" in changes and changes["status"] is not None:
            try:
                values["status"] = ReservationStatus(changes["status"]).value
            except ValueError:
                raise InvalidRequest("Unknown status", {"status": str(changes["status"])})
        if "notes" in changes:
            values["notes"] = changes["notes"]

        if not values:
            return reservation

        before = {field: getattr(reservation, field) for field in values}
        values["updated_at"] = now_utc()

        await db.execute(
            update(Reservation)
            .where(Reservation.id == reservation_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        db.add(AuditLog(
            actor_id=actor.id,
            actor_type="user",
            actor_name=actor.email,
            action="reservation.admin_override",
            resource_type="reservation",
            resource_id=reservation_id,
            data_json={
                "before": before,
                "after": {field: values[field] for field in before},
            },
        ))
        await db.commit()

        reservation = await _load(db, reservation_id)

    logger.warning(
        "Admin override applied",
        reservation_id=str(reservation_id),
        actor_id=str(actor.id),
        fields=sorted(before),
        status=reservation.status,
    )
    return reservation
