"""
Checkout session initiator.

Opens a payment session for a pending reservation. The charge always comes
from the stored reservation; client metadata is carried along as strings but
can never override the server-set keys.
"""

import json
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from reservepay.errors import InvalidRequest, ReservationNotFound, StatusConflict
from reservepay.models.reservation import ReservationStatus
from reservepay.services.payments import CheckoutSession, PaymentGateway
from reservepay.services.pricing import PricingAuthority
from reservepay.store import ReservationStore, parse_status

logger = structlog.get_logger()

SERVER_METADATA_KEYS = ("reservationId", "via", "amount", "currency")
MAX_METADATA_KEYS = 20
MAX_METADATA_VALUE_LENGTH = 500


def build_metadata(reservation_id: UUID, client_metadata: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Stringify client metadata and stamp the server-owned keys over it"""
    metadata: Dict[str, str] = {}
    for key, value in (client_metadata or {}).items():
        if value is None or key in SERVER_METADATA_KEYS:
            continue
        if len(metadata) >= MAX_METADATA_KEYS:
            break
        text = value if isinstance(value, str) else json.dumps(value)
        metadata[str(key)[:40]] = text[:MAX_METADATA_VALUE_LENGTH]

    metadata["reservationId"] = str(reservation_id)
    metadata["via"] = "checkout"
    return metadata


class CheckoutSessionInitiator:
    def __init__(self, db: AsyncSession, gateway: PaymentGateway, pricing: PricingAuthority):
        self.store = ReservationStore(db)
        self.gateway = gateway
        self.pricing = pricing

    async def create_session(
        self,
        reservation_id: UUID,
        client_metadata: Optional[Mapping[str, Any]] = None,
    ) -> CheckoutSession:
        log = logger.bind(reservation_id=str(reservation_id), mode=self.gateway.mode)

        reservation = await self.store.get(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)

        status = parse_status(reservation.status)
        if status != ReservationStatus.PENDING:
            log.info("Checkout rejected", status=status.value)
            raise StatusConflict("Only pending reservations can be paid", status.value)

        charge = self.pricing.charge_for(reservation)
        if charge.amount <= 0:
            raise InvalidRequest("Reservation has no payable amount", {"amount": charge.amount})

        session = await self.gateway.create_session(charge, build_metadata(reservation_id, client_metadata))
        log.info(
            "Checkout session created",
            amount=charge.amount,
            currency=charge.currency,
            session_id=session.session_id,
        )
        return session
