"""
Cancellation resolver.

Owner-checked, idempotent transition to CANCELLED. A missing reservation and
one owned by someone else produce the same error so callers cannot probe for
existence.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from reservepay.errors import NotFoundOrForbidden, StatusConflict
from reservepay.models.customer import Customer
from reservepay.models.reservation import Reservation, ReservationStatus
from reservepay.notify.dispatcher import NotificationDispatcher
from reservepay.notify.templates import NotificationKind
from reservepay.store import ReservationStore, parse_status, store_errors
from reservepay.utils import looks_like_email, normalize_email, now_utc

logger = structlog.get_logger()

CANCELLABLE = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)
MAX_REASON_LENGTH = 500
CANCEL_NOTE_PREFIX = "[CANCEL] "


@dataclass(frozen=True)
class RequesterIdentity:
    """Caller resolved from a customer identity token"""
    subject: str
    email: Optional[str] = None

    def owns(self, customer: Optional[Customer]) -> bool:
        if customer is None:
            return False
        for claim in (self.subject, self.email):
            if not claim:
                continue
            if looks_like_email(claim):
                if normalize_email(claim) == customer.email:
                    return True
            elif claim == str(customer.id):
                return True
        return False


@dataclass
class CancellationResult:
    reservation: Reservation
    transitioned: bool


def cancel_note(reason: Optional[str]) -> Optional[str]:
    if not reason or not reason.strip():
        return None
    return CANCEL_NOTE_PREFIX + reason.strip()[:MAX_REASON_LENGTH]


class CancellationResolver:
    def __init__(self, db: AsyncSession, notifier: NotificationDispatcher):
        self.db = db
        self.store = ReservationStore(db)
        self.notifier = notifier

    async def cancel(
        self,
        reservation_id: UUID,
        requester: RequesterIdentity,
        reason: Optional[str] = None,
    ) -> CancellationResult:
        log = logger.bind(reservation_id=str(reservation_id))

        reservation = await self.store.get(reservation_id, with_customer=True)
        if reservation is None or not requester.owns(reservation.customer):
            log.info("Cancel rejected: not found or not owner")
            raise NotFoundOrForbidden()

        status = parse_status(reservation.status)
        if status == ReservationStatus.CANCELLED:
            log.info("Reservation already cancelled")
            return CancellationResult(reservation, transitioned=False)
        if status not in CANCELLABLE:
            raise StatusConflict(f"Cannot cancel a reservation in status {status.value}", status.value)

        matched = await self.store.conditional_set_status(
            reservation_id,
            from_statuses=CANCELLABLE,
            to_status=ReservationStatus.CANCELLED,
            fields={"cancelled_at": now_utc()},
            append_note=cancel_note(reason),
        )

        if not matched:
            await self.db.rollback()
            current = await self.store.get(reservation_id, with_customer=True)
            if current is not None and parse_status(current.status) == ReservationStatus.CANCELLED:
                log.info("Concurrent cancel won the race")
                return CancellationResult(current, transitioned=False)
            current_status = current.status if current is not None else "UNKNOWN"
            raise StatusConflict(f"Cannot cancel a reservation in status {current_status}", current_status)

        async with store_errors("commit"):
            await self.db.commit()

        reservation = await self.store.get(reservation_id, with_customer=True)
        log.info("Reservation cancelled", previous_status=status.value)

        self.notifier.notify(
            NotificationKind.CANCELLED,
            reservation,
            reservation.customer,
            {"via": "api", "reason": reason.strip()[:MAX_REASON_LENGTH] if reason else None},
        )
        return CancellationResult(reservation, transitioned=True)
