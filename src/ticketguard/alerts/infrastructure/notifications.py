"""
Notification Channel Adapters
==============================

Delivery adapters for alert notifications. Real email/SMS/chat delivery
lives in the embedding service; the logging channel only logs what would
have been sent.
"""

from typing import Sequence

from ticketguard.alerts.application.services import INotificationChannel
from ticketguard.sla.domain.entities import SLAAlert
from ticketguard.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class LoggingNotificationChannel(INotificationChannel):
    """Logs every notification on its enabled channels."""

    def __init__(self, enabled_channels: Sequence[str] = ("email", "sms", "phone", "slack")):
        self.enabled_channels = frozenset(enabled_channels)

    def send(self, alert: SLAAlert, channels: Sequence[str], targets: Sequence[str]) -> None:
        for channel in channels:
            if channel not in self.enabled_channels:
                logger.debug(
                    "Notification channel disabled",
                    extra={"channel": channel, "alert_id": alert.id}
                )
                continue

            logger.info(
                "Sending alert notification",
                extra={
                    "channel": channel,
                    "alert_id": alert.id,
                    "ticket_id": alert.ticket_id,
                    "targets": list(targets),
                }
            )
