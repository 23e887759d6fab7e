"""Notification outbox helpers."""

from .outbox import COLLECTED_EVENT, cancel_collected_notifications, is_email, queue_collected_notification

__all__ = [
    "COLLECTED_EVENT",
    "cancel_collected_notifications",
    "is_email",
    "queue_collected_notification",
]
