"""
Reservation creation and owner-scoped reads.
"""

import datetime
from typing import Mapping, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from reservepay.errors import InvalidRequest, NotFoundOrForbidden
from reservepay.models.reservation import Reservation, ReservationStatus
from reservepay.notify.dispatcher import NotificationDispatcher
from reservepay.notify.templates import NotificationKind
from reservepay.services.cancellation import RequesterIdentity
from reservepay.services.pricing import PricingAuthority
from reservepay.store import ReservationStore, store_errors
from reservepay.utils import looks_like_email, normalize_email

logger = structlog.get_logger()


class BookingService:
    def __init__(self, db: AsyncSession, pricing: PricingAuthority, notifier: NotificationDispatcher):
        self.db = db
        self.store = ReservationStore(db)
        self.pricing = pricing
        self.notifier = notifier

    async def create_reservation(
        self,
        email: str,
        date: datetime.date,
        slot: str,
        counts: Mapping[str, int],
        name: Optional[str] = None,
        phone: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Reservation:
        email = normalize_email(email)
        if not looks_like_email(email):
            raise InvalidRequest("A valid email address is required")
        if not slot or not slot.strip():
            raise InvalidRequest("A time slot is required")

        charge = self.pricing.price_party(counts)

        customer = await self.store.upsert_customer_by_email(
            email,
            name=(name or "").strip() or email.split("@", 1)[0],
            phone=phone,
        )

        reservation = Reservation(
            customer_id=customer.id,
            date=date,
            slot=slot.strip(),
            adult_count=int(counts.get("adult", 0) or 0),
            student_count=int(counts.get("student", 0) or 0),
            child_count=int(counts.get("child", 0) or 0),
            infant_count=int(counts.get("infant", 0) or 0),
            amount=charge.amount,
            currency=charge.currency,
            status=ReservationStatus.PENDING.value,
            notes=notes,
        )
        await self.store.add_reservation(reservation)

        async with store_errors("commit"):
            await self.db.commit()

        reservation = await self.store.get(reservation.id, with_customer=True)
        logger.info(
            "Reservation created",
            reservation_id=str(reservation.id),
            customer_id=str(customer.id),
            amount=charge.amount,
            currency=charge.currency,
        )

        self.notifier.notify(NotificationKind.RECEIVED, reservation, reservation.customer, {"via": "api"})
        return reservation

    async def get_owned(self, reservation_id: UUID, requester: RequesterIdentity) -> Reservation:
        reservation = await self.store.get(reservation_id, with_customer=True)
        if reservation is None or not requester.owns(reservation.customer):
            raise NotFoundOrForbidden()
        return reservation
