"""
SLA Domain Entities
====================

Pure Python domain entities for SLA tracking.

``TicketSnapshot`` and ``SLATracking`` are read-only views owned by the
external ticket store; the engine never mutates them. It produces
``SLATrackingUpdate`` messages and ``EscalationHistoryEntry`` records that the
caller applies through the store. ``SLAAlert`` is the one entity the engine
owns, and its only mutation is acknowledgement.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from ticketguard.config import AlertSeverity, AlertType, Priority, TicketStatus
from ticketguard.sla.domain.value_objects import SLAConfiguration


@dataclass(frozen=True)
class EscalationHistoryEntry:
    """One step up the escalation ladder."""

    level: int
    timestamp: datetime
    reason: str
    escalated_by: str
    escalated_to: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SLATracking:
    """
    Per-ticket SLA record.

    The three target fields are copied from the ticket's SLA configuration
    at creation and never change afterwards. ``actual_*`` are set once,
    ``sla_breached`` only goes False -> True, ``escalation_level`` never
    decreases and ``escalation_history`` is append-only.
    """

    response_time_minutes: int
    resolution_time_hours: float
    escalation_time_hours: float
    actual_response_time: Optional[float] = None  # minutes
    actual_resolution_time: Optional[float] = None  # hours
    sla_breached: bool = False
    breach_reason: Optional[str] = None
    escalation_level: int = 0
    escalation_history: Tuple[EscalationHistoryEntry, ...] = ()

    @classmethod
    def from_configuration(cls, config: SLAConfiguration) -> "SLATracking":
        """Start tracking a new ticket against the given SLA configuration."""
        return cls(
            response_time_minutes=config.response_time_minutes,
            resolution_time_hours=config.resolution_time_hours,
            escalation_time_hours=config.escalation_time_hours,
        )


@dataclass(frozen=True)
class SLATrackingUpdate:
    """
    Partial SLA tracking update computed by the engine.

    Fields left as ``None`` are not touched by the store.
    """

    actual_response_time: Optional[float] = None
    actual_resolution_time: Optional[float] = None
    sla_breached: Optional[bool] = None
    breach_reason: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.actual_response_time is None
            and self.actual_resolution_time is None
            and self.sla_breached is None
        )

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class TicketSnapshot:
    """
    Read-only view of a support ticket consumed by the engine.
    """

    id: str
    priority: Priority
    status: TicketStatus
    created_at: datetime
    sla_tracking: SLATracking
    assigned_to: Optional[str] = None
    ticket_number: Optional[str] = None
    category: Optional[str] = None

    @property
    def display_id(self) -> str:
        return self.ticket_number or self.id


@dataclass
class SLAAlert:
    """
    SLA alert entity.

    Created by the alert generator, stored by the alert service, and only
    ever mutated by ``acknowledge``.
    """

    id: str
    ticket_id: str
    type: AlertType
    severity: AlertSeverity
    message: str
    target_users: List[str] = field(default_factory=list)
    channels: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    acknowledged: bool = False
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None

    def acknowledge(self, user_id: str, timestamp: Optional[datetime] = None) -> bool:
        """Mark the alert acknowledged. Returns False if it already was."""
        if self.acknowledged:
            return False
        self.acknowledged = True
        self.acknowledged_by = user_id
        self.acknowledged_at = timestamp or datetime.now(timezone.utc)
        return True

    @property
    def acknowledgment_minutes(self) -> Optional[float]:
        if not self.acknowledged_at:
            return None
        return (self.acknowledged_at - self.created_at).total_seconds() / 60

    def to_dict(self) -> dict:
        """Convert to dictionary for notification payloads."""
        return {
            "id": self.id,
            "ticket_id": self.ticket_id,
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "target_users": list(self.target_users),
            "channels": list(self.channels),
            "created_at": self.created_at.isoformat(),
            "acknowledged": self.acknowledged,
            "acknowledged_by": self.acknowledged_by,
            "acknowledged_at": self.acknowledged_at.isoformat() if self.acknowledged_at else None,
        }
