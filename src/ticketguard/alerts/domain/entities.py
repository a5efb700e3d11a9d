"""
Alert Domain Entities
======================

Records kept by the alert service about rule firings.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ticketguard.alerts.domain.value_objects import AlertAction
from ticketguard.sla.domain.entities import SLAAlert


@dataclass
class AlertInstance:
    """One firing of an alert rule for an alert."""

    id: str
    rule_id: str
    alert_id: str
    ticket_id: str
    triggered_at: datetime
    acknowledged: bool = False
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def acknowledge(self, user_id: str, timestamp: datetime) -> None:
        if self.acknowledged:
            return
        self.acknowledged = True
        self.acknowledged_by = user_id
        self.acknowledged_at = timestamp


@dataclass(frozen=True)
class DeferredAction:
    """A delayed rule action waiting for its due time."""

    due_at: datetime
    rule_id: str
    action: AlertAction
    alert: SLAAlert
