"""
Verification Domain Entities
=============================

Verification gates and the ticket actions queued behind them.

Gate state machine::

    blocked ------(re-evaluation passes)--> completed
    open | blocked --(bypass approved)--> bypassed

``completed`` and ``bypassed`` are terminal and record ``completed_at``.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from ticketguard.config import ActionType, GateStatus

GateKey = Tuple[str, str]


def _action_id() -> str:
    return f"action_{uuid4().hex[:12]}"


@dataclass(frozen=True)
class TicketAction:
    """A requested ticket action. Ids are generated when not supplied."""

    type: ActionType
    ticket_id: str
    user_id: str
    data: Dict[str, Any] = field(default_factory=dict, compare=False)
    id: str = field(default_factory=_action_id)

    @property
    def gate_key(self) -> GateKey:
        return (self.ticket_id, self.user_id)


@dataclass
class VerificationGate:
    """
    Per (ticket, user) gate.

    ``required_actions`` only grows; merging keeps first-seen order.
    """

    ticket_id: str
    user_id: str
    status: GateStatus
    created_at: datetime
    required_actions: List[ActionType] = field(default_factory=list)
    blocking_reasons: List[str] = field(default_factory=list)
    bypass_reason: Optional[str] = None
    completed_at: Optional[datetime] = None

    @property
    def key(self) -> GateKey:
        return (self.ticket_id, self.user_id)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def merge_actions(self, actions) -> None:
        for action in actions:
            if action not in self.required_actions:
                self.required_actions.append(action)

    def complete(self, timestamp: datetime) -> None:
        self.status = GateStatus.COMPLETED
        self.blocking_reasons = []
        self.completed_at = timestamp

    def bypass(self, reason: str, timestamp: datetime) -> None:
        self.status = GateStatus.BYPASSED
        self.bypass_reason = reason
        self.completed_at = timestamp

    def snapshot(self) -> "VerificationGate":
        """Detached copy safe to hand to callers."""
        return replace(
            self,
            required_actions=list(self.required_actions),
            blocking_reasons=list(self.blocking_reasons),
        )


@dataclass(frozen=True)
class ActionOutcome:
    """Result reported by the action executor."""

    success: bool
    reason: str = ""


@dataclass(frozen=True)
class ActionResult:
    """Result of requesting an action through the gate manager."""

    success: bool
    blocked: bool
    action_id: str
    reason: str = ""
    gate: Optional[VerificationGate] = None


@dataclass(frozen=True)
class ProgressResult:
    """
    Result of a verification progress update.

    ``executed`` and ``failed`` list queued action ids in enqueue order.
    """

    gate: Optional[VerificationGate]
    opened: bool = False
    executed: Tuple[str, ...] = ()
    failed: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BypassOutcome:
    """Result of a gate bypass request."""

    success: bool
    reason: str
    conditions: Tuple[str, ...] = ()
    gate: Optional[VerificationGate] = None
    executed: Tuple[str, ...] = ()
    failed: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GateStatusReport:
    """Gate probe result. ``found`` is False when no gate exists."""

    found: bool
    verification_status: Dict[str, bool]
    gate: Optional[VerificationGate] = None
    blocked_actions: Tuple[ActionType, ...] = ()
    pending_actions: Tuple[TicketAction, ...] = ()
