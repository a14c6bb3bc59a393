"""
Pricing authority.

Amounts are derived once, from party counts and the configured price table,
when a reservation is created. Every later charge reads the stored amount
back from the reservation; no caller-supplied amount is ever used.
"""

from dataclasses import dataclass
from typing import Dict, Mapping

from reservepay.errors import InvalidRequest
from reservepay.models.reservation import Reservation

PARTY_CATEGORIES = ("adult", "student", "child", "infant")


@dataclass(frozen=True)
class Charge:
    amount: int
    currency: str


class PricingAuthority:
    def __init__(self, unit_prices: Mapping[str, int], currency: str):
        self.unit_prices = dict(unit_prices)
        self.currency = currency.lower()

    def price_party(self, counts: Mapping[str, int]) -> Charge:
        """Compute the charge for a new reservation"""
        normalized: Dict[str, int] = {}
        for category in PARTY_CATEGORIES:
            value = int(counts.get(category, 0) or 0)
            if value < 0:
                raise InvalidRequest(
                    "Party counts must not be negative",
                    {"category": category},
                )
            normalized[category] = value

        if sum(normalized.values()) < 1:
            raise InvalidRequest("At least one guest is required")

        amount = sum(
            normalized[category] * self.unit_prices.get(category, 0)
            for category in PARTY_CATEGORIES
        )
        return Charge(amount=amount, currency=self.currency)

    def charge_for(self, reservation: Reservation) -> Charge:
        """Authoritative charge for an existing reservation"""
        return Charge(
            amount=int(reservation.amount),
            currency=(reservation.currency or self.currency).lower(),
        )
