"""
Alert Application Layer
========================

Contains:
- Services: Alert storage, rule matching and action execution
- DTOs: Alert statistics
"""

from ticketguard.alerts.application.dto import AlertStatistics
from ticketguard.alerts.application.services import AlertService, INotificationChannel

__all__ = [
    # DTOs
    "AlertStatistics",
    # Services
    "AlertService",
    # Collaborator Interfaces
    "INotificationChannel",
]
