"""
Notifications: typed payloads, the in-transaction dispatcher and the
polling read path.
"""

from .dispatcher import NotificationDescriptor, dispatch, notify_for
from .types import NotificationPayload, build_notification_link

__all__ = [
    "NotificationDescriptor",
    "NotificationPayload",
    "build_notification_link",
    "dispatch",
    "notify_for",
]
