"""
SLA Repository Implementations
===============================

In-memory ticket store implementing the ticket repository interface.

Production deployments plug their own store in behind ``ITicketRepository``;
this implementation backs tests and embedding services that keep tickets
in memory. It enforces the SLA tracking invariants on every write.
"""

import threading
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from ticketguard.config import ACTIVE_STATUSES, TicketStatus
from ticketguard.core.exceptions import DomainException, TicketNotFoundException
from ticketguard.sla.application.services import ITicketRepository
from ticketguard.sla.domain.entities import (
    EscalationHistoryEntry, SLATracking, SLATrackingUpdate, TicketSnapshot
)
from ticketguard.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class InMemoryTicketRepository(ITicketRepository):
    """
    Thread-safe in-memory ticket store.

    Tickets are immutable snapshots; every write replaces the stored
    snapshot under a lock.
    """

    def __init__(self, tickets: Iterable[TicketSnapshot] = ()):
        self._tickets: Dict[str, TicketSnapshot] = {t.id: t for t in tickets}
        self._lock = threading.Lock()

    def add(self, ticket: TicketSnapshot) -> TicketSnapshot:
        with self._lock:
            self._tickets[ticket.id] = ticket
        return ticket

    def get_ticket(self, ticket_id: str) -> TicketSnapshot:
        with self._lock:
            ticket = self._tickets.get(ticket_id)
        if ticket is None:
            raise TicketNotFoundException(ticket_id)
        return ticket

    def update_status(
        self,
        ticket_id: str,
        status: TicketStatus,
        assigned_to: Optional[str] = None,
    ) -> TicketSnapshot:
        """Change status (and optionally the assignee) of a stored ticket."""
        with self._lock:
            ticket = self._require(ticket_id)
            changes = {"status": status}
            if assigned_to is not None:
                changes["assigned_to"] = assigned_to
            ticket = replace(ticket, **changes)
            self._tickets[ticket_id] = ticket
        return ticket

    def apply_sla_update(self, ticket_id: str, update: SLATrackingUpdate) -> TicketSnapshot:
        """
        Merge a partial SLA tracking update.

        Raises DomainException if the update would overwrite an actual time
        or clear the breach flag.
        """
        with self._lock:
            ticket = self._require(ticket_id)
            tracking = ticket.sla_tracking
            changes = {}

            if update.actual_response_time is not None:
                if tracking.actual_response_time is not None:
                    raise DomainException(
                        "actual response time is already recorded",
                        {"ticket_id": ticket_id}
                    )
                changes["actual_response_time"] = update.actual_response_time

            if update.actual_resolution_time is not None:
                if tracking.actual_resolution_time is not None:
                    raise DomainException(
                        "actual resolution time is already recorded",
                        {"ticket_id": ticket_id}
                    )
                changes["actual_resolution_time"] = update.actual_resolution_time

            if update.sla_breached is not None:
                if tracking.sla_breached and not update.sla_breached:
                    raise DomainException(
                        "an SLA breach cannot be cleared",
                        {"ticket_id": ticket_id}
                    )
                if update.sla_breached and not tracking.sla_breached:
                    changes["sla_breached"] = True
                    changes["breach_reason"] = update.breach_reason

            ticket = self._store_tracking(ticket, replace(tracking, **changes))

        logger.debug(
            "SLA tracking updated",
            extra={"ticket_id": ticket_id, "changes": update.to_dict()}
        )
        return ticket

    def apply_escalation(
        self, ticket_id: str, level: int, entry: EscalationHistoryEntry
    ) -> TicketSnapshot:
        """Raise the escalation level and append the history entry."""
        if entry.level != level:
            raise DomainException(
                "escalation entry level does not match the requested level",
                {"ticket_id": ticket_id, "level": level, "entry_level": entry.level}
            )

        with self._lock:
            ticket = self._require(ticket_id)
            tracking = ticket.sla_tracking
            if level < tracking.escalation_level:
                raise DomainException(
                    "escalation level cannot decrease",
                    {"ticket_id": ticket_id, "current": tracking.escalation_level, "level": level}
                )
            ticket = self._store_tracking(ticket, replace(
                tracking,
                escalation_level=level,
                escalation_history=tracking.escalation_history + (entry,),
            ))
        return ticket

    def list_active(self) -> List[TicketSnapshot]:
        with self._lock:
            return [t for t in self._tickets.values() if t.status in ACTIVE_STATUSES]

    def list_all(self) -> List[TicketSnapshot]:
        with self._lock:
            return list(self._tickets.values())

    def _require(self, ticket_id: str) -> TicketSnapshot:
        ticket = self._tickets.get(ticket_id)
        if ticket is None:
            raise TicketNotFoundException(ticket_id)
        return ticket

    def _store_tracking(self, ticket: TicketSnapshot, tracking: SLATracking) -> TicketSnapshot:
        ticket = replace(ticket, sla_tracking=tracking)
        self._tickets[ticket.id] = ticket
        return ticket
