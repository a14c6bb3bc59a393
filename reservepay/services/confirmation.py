"""
Confirmation resolver.

Single guarded PENDING -> CONFIRMED transition shared by the redirect-return
endpoint, the processor webhook and the generic confirm endpoint. Whatever
order or how many times those triggers arrive, the reservation ends up
CONFIRMED once, with the first accepted payment reference, and exactly one
confirmation notification goes out (only the caller whose conditional update
matched sends it).
"""

import uuid
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from reservepay.errors import ReservationNotFound, StatusConflict
from reservepay.models.reservation import ConfirmationSource, Reservation, ReservationStatus
from reservepay.notify.dispatcher import NotificationDispatcher
from reservepay.notify.templates import NotificationKind
from reservepay.store import ReservationStore, parse_status, store_errors
from reservepay.utils import now_utc

logger = structlog.get_logger()


def synthesize_reference() -> str:
    """Reference used when a trigger carries none (simulation / manual confirm)"""
    return f"sim_{uuid.uuid4().hex}"


@dataclass
class ConfirmationResult:
    reservation: Reservation
    transitioned: bool

    @property
    def already_confirmed(self) -> bool:
        return not self.transitioned


class ConfirmationResolver:
    def __init__(self, db: AsyncSession, notifier: NotificationDispatcher):
        self.db = db
        self.store = ReservationStore(db)
        self.notifier = notifier

    async def confirm(
        self,
        reservation_id: UUID,
        payment_reference: Optional[str] = None,
        source: ConfirmationSource = ConfirmationSource.API,
    ) -> ConfirmationResult:
        log = logger.bind(reservation_id=str(reservation_id), source=source.value)

        reservation = await self.store.get(reservation_id)
        if reservation is None:
            log.warning("Confirm for unknown reservation")
            raise ReservationNotFound(reservation_id)

        status = parse_status(reservation.status)
        if status == ReservationStatus.CONFIRMED:
            log.info("Reservation already confirmed", payment_reference=reservation.payment_reference)
            return ConfirmationResult(reservation, transitioned=False)
        if status == ReservationStatus.CANCELLED:
            log.warning("Confirm rejected for cancelled reservation")
            raise StatusConflict("Cannot confirm a cancelled reservation", status.value)

        reference = payment_reference or synthesize_reference()
        matched = await self.store.conditional_set_status(
            reservation_id,
            from_statuses=[ReservationStatus.PENDING],
            to_status=ReservationStatus.CONFIRMED,
            fields={
                "payment_reference": reference,
                "confirmation_source": source.value,
                "confirmed_at": now_utc(),
            },
        )

        if not matched:
            # Another trigger changed the row between our read and write
            await self.db.rollback()
            return await self._after_lost_race(reservation_id, log)

        async with store_errors("commit"):
            await self.db.commit()

        reservation = await self.store.get(reservation_id, with_customer=True)
        log.info("Reservation confirmed", payment_reference=reference)

        self.notifier.notify(
            NotificationKind.CONFIRMED,
            reservation,
            reservation.customer,
            {"via": source.value},
        )
        return ConfirmationResult(reservation, transitioned=True)

    async def _after_lost_race(self, reservation_id: UUID, log) -> ConfirmationResult:
        current = await self.store.get(reservation_id)
        if current is None:
            raise ReservationNotFound(reservation_id)

        status = parse_status(current.status)
        if status == ReservationStatus.CONFIRMED:
            log.info("Concurrent confirm won the race", payment_reference=current.payment_reference)
            return ConfirmationResult(current, transitioned=False)

        log.warning("Confirm lost race to a different transition", status=status.value)
        raise StatusConflict("Reservation can no longer be confirmed", status.value)
