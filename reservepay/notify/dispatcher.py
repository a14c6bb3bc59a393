"""
Notification dispatcher.

`notify` is fire-and-forget: messages are built from a snapshot of the
reservation right away, then delivered off the request path (an asyncio task,
or a Celery task when that backend is configured). Every failure is logged and
swallowed here; nothing propagates to the caller's response.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Set

import structlog

from reservepay.models.customer import Customer
from reservepay.models.reservation import Reservation
from reservepay.notify.mailer import Mailer
from reservepay.notify.sms import SmsSender
from reservepay.notify.templates import (
    NotificationKind,
    ReservationSnapshot,
    build_customer_message,
    build_sms_text,
    build_staff_message,
)

logger = structlog.get_logger()

Delivery = Dict[str, Any]


def snapshot(reservation: Reservation, customer: Customer) -> ReservationSnapshot:
    return ReservationSnapshot(
        reservation_id=str(reservation.id),
        date=reservation.date.isoformat() if reservation.date else "",
        slot=reservation.slot or "",
        amount=int(reservation.amount or 0),
        currency=reservation.currency or "",
        status=str(reservation.status),
        customer_name=customer.name or "",
        customer_email=customer.email,
        customer_phone=customer.phone,
        party_counts=reservation.party_counts,
        payment_reference=reservation.payment_reference,
    )


class NotificationDispatcher:
    def __init__(
        self,
        mailer: Mailer,
        sms: Optional[SmsSender] = None,
        staff_to: Sequence[str] = (),
        staff_cc: Sequence[str] = (),
        staff_bcc: Sequence[str] = (),
        timeout: float = 10.0,
        backend: str = "inline",
    ):
        self.mailer = mailer
        self.sms = sms
        self.staff_to = list(staff_to)
        self.staff_cc = list(staff_cc)
        self.staff_bcc = list(staff_bcc)
        self.timeout = timeout
        self.backend = backend
        self._pending: Set[asyncio.Task] = set()

    def build_deliveries(
        self,
        kind: NotificationKind,
        reservation: Reservation,
        customer: Customer,
        extra: Optional[Dict[str, Any]] = None,
    ) -> List[Delivery]:
        extra = extra or {}
        snap = snapshot(reservation, customer)
        via = str(extra.get("via", "api"))
        deliveries: List[Delivery] = []

        message = build_customer_message(kind, snap, extra)
        deliveries.append({
            "channel": "email",
            "to": snap.customer_email,
            "subject": message.subject,
            "body": message.body,
            "tags": {"reservationId": snap.reservation_id, "via": via, "kind": "customer"},
        })

        if self.staff_to:
            staff_message = build_staff_message(kind, snap, extra)
            deliveries.append({
                "channel": "email",
                "to": self.staff_to[0],
                "cc": self.staff_to[1:] + self.staff_cc,
                "bcc": self.staff_bcc,
                "subject": staff_message.subject,
                "body": staff_message.body,
                "tags": {"reservationId": snap.reservation_id, "via": via, "kind": "admin"},
            })

        if self.sms is not None and snap.customer_phone:
            deliveries.append({
                "channel": "sms",
                "to": snap.customer_phone,
                "body": build_sms_text(kind, snap),
            })

        return deliveries

    def notify(
        self,
        kind: NotificationKind,
        reservation: Reservation,
        customer: Customer,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Schedule delivery of `kind` for this reservation; never raises"""
        try:
            deliveries = self.build_deliveries(kind, reservation, customer, extra)

            if self.backend == "celery":
                from reservepay.jobs.celery_app import celery_app

                celery_app.send_task("deliver_notification", args=[kind.value, deliveries])
            else:
                task = asyncio.get_running_loop().create_task(self.deliver(deliveries))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

            logger.info(
                "Notification dispatched",
                kind=kind.value,
                reservation_id=str(reservation.id),
                deliveries=len(deliveries),
                backend=self.backend,
            )
        except Exception:
            logger.exception(
                "Failed to dispatch notification",
                kind=kind.value,
                reservation_id=str(reservation.id),
            )

    async def deliver(self, deliveries: List[Delivery]) -> None:
        for delivery in deliveries:
            await self._deliver_one(delivery)

    async def _deliver_one(self, delivery: Delivery) -> None:
        tags = delivery.get("tags") or {}
        try:
            if delivery["channel"] == "sms":
                if self.sms is None:
                    return
                coro = self.sms.send(delivery["to"], delivery["body"])
            else:
                coro = self.mailer.send(
                    delivery["to"],
                    delivery["subject"],
                    delivery["body"],
                    tags=tags,
                    cc=delivery.get("cc") or None,
                    bcc=delivery.get("bcc") or None,
                )
            await asyncio.wait_for(coro, timeout=self.timeout)
        except Exception:
            logger.exception(
                "Notification delivery failed",
                channel=delivery.get("channel"),
                reservation_id=tags.get("reservationId"),
                kind=tags.get("kind"),
            )

    async def drain(self) -> None:
        """Wait for in-flight inline deliveries (shutdown and tests)"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
