"""Request dependencies backed by the objects wired in `create_app`"""

from fastapi import Depends, Request

from reservepay.config import Settings
from reservepay.notify.dispatcher import NotificationDispatcher
from reservepay.services.payments import PaymentGateway
from reservepay.services.pricing import PricingAuthority


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_notifier(request: Request) -> NotificationDispatcher:
    return request.app.state.notifier


def get_payment_gateway(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> PaymentGateway:
    """Gateway for the deployment's payment mode (never chosen by the request)"""
    return request.app.state.payment_gateway_factory(settings)


def get_pricing(settings: Settings = Depends(get_app_settings)) -> PricingAuthority:
    return PricingAuthority(settings.unit_prices, settings.currency)
