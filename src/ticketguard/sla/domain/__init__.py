"""
SLA Domain Layer
================

Domain layer for the SLA module.

Contains:
- Entities: Ticket snapshots, SLA tracking records and alerts
- Value Objects: SLA configuration, policy table, business calendar, results
- Domain Services: Stateless breach, alert and escalation logic

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from ticketguard.sla.domain.entities import (
    EscalationHistoryEntry,
    SLAAlert,
    SLATracking,
    SLATrackingUpdate,
    TicketSnapshot,
)
from ticketguard.sla.domain.services import AlertGenerator, BreachDetector, EscalationDecider
from ticketguard.sla.domain.value_objects import (
    DEFAULT_SLA_CONFIGURATIONS,
    BreachCheck,
    BusinessCalendar,
    ElapsedTime,
    EscalationDecision,
    EscalationTier,
    SLAConfiguration,
    SLAPolicyTable,
)

__all__ = [
    # Entities
    "EscalationHistoryEntry",
    "SLAAlert",
    "SLATracking",
    "SLATrackingUpdate",
    "TicketSnapshot",
    # Domain Services
    "AlertGenerator",
    "BreachDetector",
    "EscalationDecider",
    # Value Objects
    "DEFAULT_SLA_CONFIGURATIONS",
    "BreachCheck",
    "BusinessCalendar",
    "ElapsedTime",
    "EscalationDecision",
    "EscalationTier",
    "SLAConfiguration",
    "SLAPolicyTable",
]
