"""
Security Domain Entities
=========================

Audit records and decision results produced by policy evaluation.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from ticketguard.config import PolicySeverity, ViolationType


@dataclass
class SecurityViolation:
    """
    Audit log entry.

    Violations are never deleted; the only mutation is resolving one,
    which is one-way.
    """

    id: str
    ticket_id: str
    user_id: str
    policy_id: str
    violation_type: ViolationType
    description: str
    severity: PolicySeverity
    timestamp: datetime
    resolved: bool = False
    resolution_notes: Optional[str] = None

    def resolve(self, notes: str) -> None:
        self.resolved = True
        self.resolution_notes = notes


@dataclass(frozen=True)
class AccessDecision:
    """
    Outcome of evaluating the applicable policies for a set of actions.

    A denial always carries the required actions needed to lift it.
    """

    allowed: bool
    reason: str
    required_actions: Tuple[str, ...] = ()
    blocked_actions: Tuple[str, ...] = ()
    violations: Tuple[SecurityViolation, ...] = ()
    recommendations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BypassDecision:
    """Outcome of a bypass request. Denial is a normal result, not an error."""

    approved: bool
    reason: str
    conditions: Tuple[str, ...] = ()
