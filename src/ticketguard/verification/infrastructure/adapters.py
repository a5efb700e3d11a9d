"""
Verification Adapters
=====================

In-memory verification-status source and a logging action executor.

Production deployments plug the ticket system in behind these interfaces;
these implementations back tests and local embedding.
"""

import threading
from typing import Dict, Mapping, Optional

from ticketguard.config import VERIFICATION_FIELDS
from ticketguard.shared.infrastructure.logging import get_logger
from ticketguard.verification.application.services import (
    IActionExecutor, IVerificationStatusSource
)
from ticketguard.verification.domain.entities import ActionOutcome, TicketAction

logger = get_logger(__name__)


class InMemoryVerificationStatusSource(IVerificationStatusSource):
    """
    Verification status per ticket.

    Every known verification field is reported, unverified by default.
    """

    def __init__(self, statuses: Optional[Mapping[str, Mapping[str, bool]]] = None):
        self._statuses: Dict[str, Dict[str, bool]] = {
            ticket_id: dict(status) for ticket_id, status in (statuses or {}).items()
        }
        self._lock = threading.Lock()

    def get_status(self, ticket_id: str) -> Dict[str, bool]:
        with self._lock:
            stored = dict(self._statuses.get(ticket_id, {}))
        status = {field: False for field in VERIFICATION_FIELDS}
        status.update(stored)
        return status

    def update_status(self, ticket_id: str, updates: Mapping[str, bool]) -> Dict[str, bool]:
        with self._lock:
            self._statuses.setdefault(ticket_id, {}).update(
                {field: bool(verified) for field, verified in updates.items()}
            )
        logger.debug(
            "Verification status updated",
            extra={"ticket_id": ticket_id, "fields": sorted(updates)}
        )
        return self.get_status(ticket_id)


class LoggingActionExecutor(IActionExecutor):
    """Logs each action and reports it as performed."""

    def perform(self, action: TicketAction) -> ActionOutcome:
        logger.info(
            "Performing ticket action",
            extra={
                "action_id": action.id,
                "action_type": action.type.value,
                "ticket_id": action.ticket_id,
                "user_id": action.user_id,
            }
        )
        return ActionOutcome(success=True, reason="Action executed successfully")
