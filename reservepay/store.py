"""
Reservation store.

Point lookups, the compare-and-set status primitive every customer-facing
transition goes through, and the race-safe customer upsert. Callers own the
transaction: nothing here commits.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from sqlalchemy import case, func, literal, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from reservepay.errors import DataIntegrityError, InvalidRequest, ReservationError, TransientStoreError
from reservepay.models.customer import Customer
from reservepay.models.reservation import Reservation, ReservationStatus
from reservepay.utils import normalize_email, now_utc

logger = structlog.get_logger()

NOTE_SEPARATOR = "\n"

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def parse_status(value: Any) -> ReservationStatus:
    """Map a persisted status string to the enum; anything else is corrupt data"""
    try:
        return ReservationStatus(value)
    except ValueError:
        raise DataIntegrityError(
            "Unknown reservation status in store",
            {"status": str(value)},
        )


@asynccontextmanager
async def store_errors(operation: str):
    """Translate connection-level database failures into retryable errors"""
    try:
        yield
    except ReservationError:
        raise
    except IntegrityError:
        raise
    except DataError as e:
        # Value rejected by a column constraint, e.g. a string over its length
        logger.warning("Store rejected value", operation=operation, error=str(e.orig))
        raise InvalidRequest(
            "A value exceeds the stored field limits",
            {"operation": operation},
        ) from e
    except OperationalError as e:
        logger.warning("Transient store failure", operation=operation, error=str(e))
        raise TransientStoreError(
            "Reservation store temporarily unavailable",
            {"operation": operation},
        ) from e
    except DBAPIError as e:
        if not e.connection_invalidated:
            raise
        logger.warning("Store connection invalidated", operation=operation, error=str(e))
        raise TransientStoreError(
            "Reservation store temporarily unavailable",
            {"operation": operation},
        ) from e


class ReservationStore:
    """Persistence for reservations and customers"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, reservation_id: UUID, with_customer: bool = False) -> Optional[Reservation]:
        """Load the current row, bypassing any stale identity-map copy"""
        query = select(Reservation).where(Reservation.id == reservation_id)
        if with_customer:
            query = query.options(selectinload(Reservation.customer))
        query = query.execution_options(populate_existing=True)

        async with store_errors("get"):
            result = await self.db.execute(query)
            reservation = result.scalar_one_or_none()

        if reservation is not None:
            parse_status(reservation.status)
        return reservation

    async def conditional_set_status(
        self,
        reservation_id: UUID,
        from_statuses: Iterable[ReservationStatus],
        to_status: ReservationStatus,
        fields: Optional[Dict[str, Any]] = None,
        append_note: Optional[str] = None,
    ) -> bool:
        """
        Atomically move a reservation to `to_status` if its current status is
        one of `from_statuses`. Returns False (and changes nothing) otherwise.

        `append_note` is concatenated onto `notes` inside the same UPDATE.
        """
        values: Dict[str, Any] = {
            "status": to_status.value,
            "updated_at": now_utc(),
        }
        values.update(fields or {})

        if append_note:
            values["notes"] = case(
                (func.coalesce(Reservation.notes, "") == "", literal(append_note)),
                else_=Reservation.notes + NOTE_SEPARATOR + literal(append_note),
            )

        stmt = (
            update(Reservation)
            .where(
                Reservation.id == reservation_id,
                Reservation.status.in_([s.value for s in from_statuses]),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        async with store_errors("conditional_set_status"):
            result = await self.db.execute(stmt)

        matched = result.rowcount == 1
        logger.debug(
            "Conditional status update",
            reservation_id=str(reservation_id),
            to_status=to_status.value,
            matched=matched,
        )
        return matched

    async def add_reservation(self, reservation: Reservation) -> Reservation:
        async with store_errors("add_reservation"):
            self.db.add(reservation)
            await self.db.flush()
        return reservation

    async def upsert_customer_by_email(
        self,
        email: str,
        name: str,
        phone: Optional[str] = None,
    ) -> Customer:
        """
        Return the customer for `email`, creating it if absent.

        Concurrent callers with the same email converge on one row.
        """
        email = normalize_email(email)
        now = now_utc()

        async with store_errors("upsert_customer_by_email"):
            dialect = self.db.get_bind().dialect.name
            insert_fn = _UPSERT_DIALECTS.get(dialect)

            if insert_fn is not None:
                stmt = (
                    insert_fn(Customer)
                    .values(
                        id=uuid.uuid4(),
                        name=name,
                        email=email,
                        phone=phone,
                        created_at=now,
                        updated_at=now,
                    )
                    .on_conflict_do_nothing(index_elements=["email"])
                )
                await self.db.execute(stmt)
            else:
                try:
                    async with self.db.begin_nested():
                        self.db.add(Customer(name=name, email=email, phone=phone))
                except IntegrityError:
                    logger.info("Customer already exists, reusing row")

            result = await self.db.execute(
                select(Customer)
                .where(Customer.email == email)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one()
