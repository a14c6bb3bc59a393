"""
Payment processor gateways.

`SimulationGateway` fabricates deterministic local checkout URLs and accepts
unsigned events; `StripeGateway` talks to Stripe. Which one is used is a
deployment setting (`payment_mode`), never request input, and a live
deployment without credentials fails closed instead of simulating.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import anyio
import stripe
import structlog

from reservepay.config import Settings
from reservepay.errors import (
    InvalidRequest,
    InvalidSignature,
    PaymentConfigurationError,
    PaymentProviderError,
)
from reservepay.services.pricing import Charge

logger = structlog.get_logger()

PRODUCT_NAME = "Reservation Fee"


@dataclass(frozen=True)
class CheckoutSession:
    url: str
    session_id: Optional[str] = None


@dataclass(frozen=True)
class CompletedCheckout:
    """Result of looking up a finished checkout on the redirect-return path"""
    reservation_id: Optional[str]
    payment_reference: Optional[str]


def _to_dict(obj: Any) -> Dict[str, Any]:
    if isinstance(obj, dict):
        return obj
    return obj.to_dict() if hasattr(obj, "to_dict") else dict(obj)


def payment_intent_id(value: Any) -> Optional[str]:
    """A session's payment_intent may be an id or an expanded object"""
    if not value:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return value.get("id")
    return getattr(value, "id", None)


class SimulationGateway:
    """Local stand-in for the processor (tests and offline operation)"""

    mode = "simulation"

    def __init__(self, public_base_url: str):
        self.public_base_url = public_base_url.rstrip("/")

    async def create_session(self, charge: Charge, metadata: Dict[str, str]) -> CheckoutSession:
        outcome = (metadata.get("outcome") or "").lower()
        status = "cancel" if outcome in ("decline", "cancel") else "success"

        params = urlencode({
            "amount": str(charge.amount),
            "currency": charge.currency,
            "status": status,
            "reservationId": metadata["reservationId"],
        })
        return CheckoutSession(url=f"{self.public_base_url}/mock-checkout?{params}")

    async def retrieve_completed_checkout(self, session_id: str) -> CompletedCheckout:
        raise InvalidRequest("Checkout sessions are not used in simulation mode")

    def parse_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Simulation events are plain JSON; no signature is checked"""
        try:
            event = json.loads(payload or b"{}")
        except ValueError:
            raise InvalidRequest("Invalid event payload")
        if not isinstance(event, dict):
            raise InvalidRequest("Invalid event payload")
        return event


class StripeGateway:
    """Stripe Checkout integration; the sync SDK runs in worker threads"""

    mode = "live"

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        public_base_url: str,
        timeout: float,
    ):
        if not secret_key:
            raise PaymentConfigurationError("STRIPE_SECRET_KEY is not configured")
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.public_base_url = public_base_url.rstrip("/")
        self.timeout = timeout

    async def _call(self, operation: str, fn: Callable[[], Any]) -> Any:
        try:
            with anyio.fail_after(self.timeout):
                return await anyio.to_thread.run_sync(fn, abandon_on_cancel=True)
        except TimeoutError:
            logger.error("Payment processor timed out", operation=operation, timeout=self.timeout)
            raise PaymentProviderError("Payment processor timed out", {"operation": operation})
        except stripe.StripeError as e:
            logger.error("Payment processor error", operation=operation, error=str(e))
            raise PaymentProviderError("Payment processor request failed", {"operation": operation})

    async def create_session(self, charge: Charge, metadata: Dict[str, str]) -> CheckoutSession:
        def _create() -> Dict[str, Any]:
            session = stripe.checkout.Session.create(
                api_key=self.secret_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": charge.currency,
                            "product_data": {"name": PRODUCT_NAME},
                            "unit_amount": charge.amount,
                        },
                        "quantity": 1,
                    }
                ],
                metadata=metadata,
                client_reference_id=metadata["reservationId"],
                success_url=f"{self.public_base_url}/?status=success&session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{self.public_base_url}/?status=cancel",
            )
            return _to_dict(session)

        session = await self._call("checkout.create_session", _create)
        return CheckoutSession(url=session["url"], session_id=session.get("id"))

    async def retrieve_completed_checkout(self, session_id: str) -> CompletedCheckout:
        def _retrieve() -> Dict[str, Any]:
            session = stripe.checkout.Session.retrieve(
                session_id,
                api_key=self.secret_key,
                expand=["payment_intent"],
            )
            return _to_dict(session)

        session = await self._call("checkout.retrieve_session", _retrieve)

        if session.get("status") != "complete" or session.get("payment_status") not in ("paid", "no_payment_required"):
            raise InvalidRequest(
                "Checkout session is not complete",
                {"status": session.get("status"), "payment_status": session.get("payment_status")},
            )

        metadata = session.get("metadata") or {}
        return CompletedCheckout(
            reservation_id=metadata.get("reservationId"),
            payment_reference=payment_intent_id(session.get("payment_intent")),
        )

    def parse_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify the Stripe-Signature header and decode the event"""
        if not self.webhook_secret:
            raise PaymentConfigurationError("STRIPE_WEBHOOK_SECRET is not configured")
        if not signature:
            raise InvalidSignature("Missing Stripe-Signature header")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError:
            raise InvalidSignature("Webhook signature verification failed")
        except ValueError:
            raise InvalidRequest("Invalid event payload")

        return _to_dict(event)


PaymentGateway = SimulationGateway | StripeGateway


def build_payment_gateway(settings: Settings) -> PaymentGateway:
    """Select the gateway for the configured mode"""
    mode = settings.payment_mode.strip().lower()
    if mode == "live":
        return StripeGateway(
            secret_key=settings.stripe_secret_key,
            webhook_secret=settings.stripe_webhook_secret,
            public_base_url=settings.public_base_url,
            timeout=settings.payment_timeout_seconds,
        )
    if mode == "simulation":
        return SimulationGateway(settings.public_base_url)
    raise PaymentConfigurationError(f"Unknown payment mode: {settings.payment_mode!r}")
