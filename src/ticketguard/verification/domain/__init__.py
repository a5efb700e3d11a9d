"""
Verification Domain Layer
=========================

Contains:
- Entities: Verification gates and queued ticket actions
- Results: Action, progress, bypass and gate-status outcomes
"""

from ticketguard.verification.domain.entities import (
    ActionOutcome,
    ActionResult,
    BypassOutcome,
    GateKey,
    GateStatusReport,
    ProgressResult,
    TicketAction,
    VerificationGate,
)

__all__ = [
    "ActionOutcome",
    "ActionResult",
    "BypassOutcome",
    "GateKey",
    "GateStatusReport",
    "ProgressResult",
    "TicketAction",
    "VerificationGate",
]
