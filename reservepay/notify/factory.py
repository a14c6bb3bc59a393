"""Build the notification dispatcher from settings"""

from reservepay.config import Settings
from reservepay.notify.dispatcher import NotificationDispatcher
from reservepay.notify.mailer import Mailer
from reservepay.notify.sms import SmsSender


def build_dispatcher(settings: Settings) -> NotificationDispatcher:
    mailer = Mailer(
        api_url=settings.mail_api_url,
        api_key=settings.mail_api_key,
        sender=settings.mail_from,
        timeout=settings.notification_timeout_seconds,
    )

    sms = None
    if settings.twilio_enabled:
        sms = SmsSender(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            settings.twilio_phone_number,
        )

    return NotificationDispatcher(
        mailer,
        sms=sms,
        staff_to=settings.admin_notify_to_list,
        staff_cc=settings.admin_notify_cc_list,
        staff_bcc=settings.admin_notify_bcc_list,
        timeout=settings.notification_timeout_seconds,
        backend=settings.notification_backend,
    )
