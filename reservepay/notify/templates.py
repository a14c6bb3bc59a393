"""Plain-text message builders for reservation notifications"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class NotificationKind(str, enum.Enum):
    RECEIVED = "reservation_received"
    CONFIRMED = "reservation_confirmed"
    CANCELLED = "reservation_cancelled"


@dataclass(frozen=True)
class ReservationSnapshot:
    """Detached copy of the fields a message needs"""
    reservation_id: str
    date: str
    slot: str
    amount: int
    currency: str
    status: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    party_counts: Dict[str, int] = field(default_factory=dict)
    payment_reference: Optional[str] = None


@dataclass(frozen=True)
class MailMessage:
    subject: str
    body: str


def format_amount(amount: int, currency: str) -> str:
    return f"{amount:,} {currency.upper()}"


def _party_line(counts: Dict[str, int]) -> str:
    return " / ".join(f"{k}: {v}" for k, v in counts.items())


def build_customer_message(
    kind: NotificationKind,
    snap: ReservationSnapshot,
    extra: Optional[Dict[str, Any]] = None,
) -> MailMessage:
    extra = extra or {}
    greeting = f"Hello {snap.customer_name},"
    when = f"{snap.date} {snap.slot}"

    if kind == NotificationKind.RECEIVED:
        subject = f"Reservation received ({when})"
        lines = [
            greeting,
            "",
            "We have received your reservation. It will be confirmed once payment completes.",
            "",
            f"Reservation ID: {snap.reservation_id}",
            f"Date / slot: {when}",
            f"Guests: {_party_line(snap.party_counts)}",
            f"Amount: {format_amount(snap.amount, snap.currency)}",
        ]
    elif kind == NotificationKind.CONFIRMED:
        subject = f"Payment received - reservation confirmed ({when})"
        lines = [
            greeting,
            "",
            "Your payment was received and your reservation is confirmed.",
            "",
            f"Reservation ID: {snap.reservation_id}",
            f"Date / slot: {when}",
            f"Amount paid: {format_amount(snap.amount, snap.currency)}",
        ]
    else:
        subject = f"Reservation cancelled ({when})"
        lines = [
            greeting,
            "",
            "Your reservation has been cancelled.",
            "",
            f"Reservation ID: {snap.reservation_id}",
            f"Date / slot: {when}",
        ]
        if extra.get("reason"):
            lines.append(f"Reason: {extra['reason']}")

    return MailMessage(subject=subject, body="\n".join(lines))


def build_staff_message(
    kind: NotificationKind,
    snap: ReservationSnapshot,
    extra: Optional[Dict[str, Any]] = None,
) -> MailMessage:
    extra = extra or {}
    label = {
        NotificationKind.RECEIVED: "New reservation",
        NotificationKind.CONFIRMED: "Reservation paid",
        NotificationKind.CANCELLED: "Reservation cancelled",
    }[kind]

    lines = [
        f"{label}.",
        "",
        f"Reservation ID: {snap.reservation_id}",
        f"Customer: {snap.customer_name} <{snap.customer_email}>",
        f"Date / slot: {snap.date} {snap.slot}",
        f"Guests: {_party_line(snap.party_counts)}",
        f"Amount: {format_amount(snap.amount, snap.currency)}",
        f"Status: {snap.status}",
    ]
    if snap.payment_reference:
        lines.append(f"Payment reference: {snap.payment_reference}")
    if extra.get("reason"):
        lines.append(f"Reason: {extra['reason']}")

    return MailMessage(
        subject=f"[ADMIN] {label}: {snap.reservation_id} / {snap.date} {snap.slot}",
        body="\n".join(lines),
    )


def build_sms_text(kind: NotificationKind, snap: ReservationSnapshot) -> str:
    when = f"{snap.date} {snap.slot}"
    if kind == NotificationKind.RECEIVED:
        return f"Reservation received for {when}. Complete payment to confirm."
    if kind == NotificationKind.CONFIRMED:
        return f"Your reservation for {when} is confirmed. See you soon!"
    return f"Your reservation for {when} has been cancelled."
