"""Customer and staff notifications"""

from reservepay.notify.dispatcher import NotificationDispatcher
from reservepay.notify.templates import NotificationKind

__all__ = ["NotificationDispatcher", "NotificationKind"]
