"""
Notification services package.
"""

from wallet_ledger.services.notification.service import (
    NotificationService,
    NotificationView,
)
from wallet_ledger.services.notification.sink import (
    LoggingNotificationSink,
    NotificationSink,
    PersistentNotificationSink,
    notify_safely,
)


__all__ = [
    "NotificationService",
    "NotificationView",
    "NotificationSink",
    "LoggingNotificationSink",
    "PersistentNotificationSink",
    "notify_safely",
]
