"""
Alert Infrastructure Layer
===========================

Notification channel adapters.
"""

from ticketguard.alerts.infrastructure.notifications import LoggingNotificationChannel

__all__ = [
    "LoggingNotificationChannel",
]
