"""
Security Application Services
==============================

Policy evaluation for ticket actions.

The engine evaluates the fixed set of security policies against a
verification-status map. Evaluation is side-effect free except for
appending violation records to the audit log.

Decisions are cached per (ticket, user, actions, status) for a short
time. Expiry is passive: entries are checked on read and dropped by
``purge_expired_cache``; nothing runs in the background.
"""

import threading
import time
from collections import Counter
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple
from uuid import uuid4

from ticketguard.config import PolicySeverity, ViolationType
from ticketguard.core.exceptions import PolicyNotFoundException, ViolationNotFoundException
from ticketguard.security.application.dto import SecurityInsights, ViolationSummary
from ticketguard.security.domain.entities import (
    AccessDecision, BypassDecision, SecurityViolation
)
from ticketguard.security.domain.value_objects import (
    DEFAULT_SECURITY_POLICIES, SecurityPolicy
)
from ticketguard.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

ALLOWED_REASON = "All security requirements satisfied"

# Only these bypass types are ever approved, whatever a policy's bypass
# conditions list.
APPROVED_BYPASS_TYPES = frozenset({"emergency_override", "manager_approval"})

RECENT_VIOLATION_WINDOW = timedelta(days=7)

CacheKey = Tuple[str, str, Tuple[str, ...], FrozenSet[Tuple[str, bool]]]


def _token(value) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _unique(items: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(items))


class SecurityPolicyEngine:
    """
    Evaluates access requests and bypass requests against security policies.
    """

    def __init__(
        self,
        policies: Optional[Iterable[SecurityPolicy]] = None,
        cache_ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._policies: Dict[str, SecurityPolicy] = {
            p.id: p for p in (DEFAULT_SECURITY_POLICIES if policies is None else policies)
        }
        self._cache_ttl = cache_ttl_seconds
        self._clock = clock
        self._cache: Dict[CacheKey, Tuple[float, AccessDecision]] = {}
        self._cache_lock = threading.Lock()

        self._violations: Dict[str, SecurityViolation] = {}
        self._violations_lock = threading.Lock()

        # user_id -> [evaluations, compliant evaluations]
        self._evaluation_counts: Dict[str, List[int]] = {}

        logger.info(
            "Security policies initialized",
            extra={
                "policy_count": len(self._policies),
                "policies": [
                    {"id": p.id, "severity": p.severity.value}
                    for p in self._policies.values()
                ],
            }
        )

    # ---------- Access evaluation ----------

    def evaluate_access(
        self,
        ticket_id: str,
        user_id: str,
        requested_actions: Iterable,
        verification_status: Mapping[str, bool],
        now: Optional[datetime] = None,
    ) -> AccessDecision:
        """
        Decide whether the requested actions may proceed.

        Every policy applicable to any requested action must be satisfied.
        Policies are evaluated most severe first, which decides the reason
        and the order of required actions and violations. Each unmet
        mandatory requirement appends an ``incomplete_verification``
        violation to the audit log.
        """
        actions = _unique(_token(a) for a in requested_actions)
        status = {str(k): bool(v) for k, v in verification_status.items()}
        key: CacheKey = (ticket_id, user_id, actions, frozenset(status.items()))

        cached = self._cached(key)
        if cached is not None:
            logger.debug(
                "Access decision served from cache",
                extra={"ticket_id": ticket_id, "user_id": user_id}
            )
            return cached

        now = now or datetime.now(timezone.utc)
        applicable = sorted(
            (p for p in self._policies.values() if p.applies_to(actions)),
            key=lambda p: p.severity.rank,
            reverse=True,
        )

        allowed = True
        reason = ""
        required: List[str] = []
        blocked: List[str] = []
        violations: List[SecurityViolation] = []
        recommendations: List[str] = []

        for policy in applicable:
            policy_reason, policy_required, policy_violations, policy_recs = self._evaluate_policy(
                policy, status, ticket_id, user_id, now
            )
            recommendations.extend(policy_recs)
            if not policy_required:
                continue

            allowed = False
            reason = reason or policy_reason
            required.extend(policy_required)
            blocked.extend(a for a in actions if a in policy.applicable_actions)
            violations.extend(policy_violations)

        decision = AccessDecision(
            allowed=allowed,
            reason=ALLOWED_REASON if allowed else reason,
            required_actions=_unique(required),
            blocked_actions=_unique(blocked),
            violations=tuple(violations),
            recommendations=_unique(recommendations),
        )

        self._count_evaluation(user_id, allowed)
        with self._cache_lock:
            self._cache[key] = (self._clock() + self._cache_ttl, decision)

        logger.info(
            "Access decision evaluated",
            extra={
                "ticket_id": ticket_id,
                "user_id": user_id,
                "requested_actions": list(actions),
                "allowed": decision.allowed,
                "reason": decision.reason,
                "violation_count": len(decision.violations),
            }
        )
        return decision

    def _evaluate_policy(
        self,
        policy: SecurityPolicy,
        status: Mapping[str, bool],
        ticket_id: str,
        user_id: str,
        now: datetime,
    ) -> Tuple[str, List[str], List[SecurityViolation], List[str]]:
        reason = ""
        required: List[str] = []
        violations: List[SecurityViolation] = []
        recommendations: List[str] = []

        for requirement in policy.requirements:
            if requirement.is_verified(status):
                continue

            if requirement.mandatory and not requirement.is_satisfied(status):
                reason = reason or f"{policy.name}: {requirement.field} verification required"
                required.append(f"Verify {requirement.field}")
                violations.append(self._record_violation(
                    ticket_id=ticket_id,
                    user_id=user_id,
                    policy_id=policy.id,
                    violation_type=ViolationType.INCOMPLETE_VERIFICATION,
                    description=f"Attempted action without required {requirement.field} verification",
                    severity=policy.severity,
                    timestamp=now,
                ))

            if requirement.alternatives:
                if requirement.verified_alternatives(status):
                    recommendations.append(
                        f"Consider using alternative verification for {requirement.field}"
                    )
                else:
                    recommendations.append(
                        f"Alternative verification methods available for {requirement.field}: "
                        f"{', '.join(requirement.alternatives)}"
                    )

        return reason, required, violations, recommendations

    def _cached(self, key: CacheKey) -> Optional[AccessDecision]:
        with self._cache_lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            expires_at, decision = entry
            if expires_at <= self._clock():
                del self._cache[key]
                return None
            return decision

    def purge_expired_cache(self) -> int:
        """Drop expired cached decisions. Returns how many were dropped."""
        current = self._clock()
        with self._cache_lock:
            expired = [k for k, (expires_at, _) in self._cache.items() if expires_at <= current]
            for key in expired:
                del self._cache[key]
        return len(expired)

    @property
    def cache_size(self) -> int:
        with self._cache_lock:
            return len(self._cache)

    def _count_evaluation(self, user_id: str, allowed: bool) -> None:
        with self._violations_lock:
            counts = self._evaluation_counts.setdefault(user_id, [0, 0])
            counts[0] += 1
            if allowed:
                counts[1] += 1

    # ---------- Bypass ----------

    def request_bypass(
        self,
        ticket_id: str,
        user_id: str,
        policy_id: str,
        reason: str,
        bypass_type,
        now: Optional[datetime] = None,
    ) -> BypassDecision:
        """
        Request an override of a policy.

        Non-bypassable policies deny and record a ``bypass_attempt``
        violation. Otherwise the bypass type must be listed by the policy,
        and only emergency overrides and manager approvals are approved;
        approvals are recorded as resolved ``policy_violation`` entries
        carrying the given reason.

        Raises PolicyNotFoundException for an unknown policy id.
        """
        policy = self._policies.get(policy_id)
        if policy is None:
            raise PolicyNotFoundException(policy_id)

        now = now or datetime.now(timezone.utc)
        bypass_type = _token(bypass_type)

        if not policy.bypassable:
            logger.warning(
                "Bypass attempt on non-bypassable policy",
                extra={
                    "ticket_id": ticket_id,
                    "user_id": user_id,
                    "policy_id": policy_id,
                    "bypass_reason": reason,
                }
            )
            self._record_violation(
                ticket_id=ticket_id,
                user_id=user_id,
                policy_id=policy_id,
                violation_type=ViolationType.BYPASS_ATTEMPT,
                description=f"Attempted bypass of non-bypassable policy: {policy.name}",
                severity=PolicySeverity.CRITICAL,
                timestamp=now,
            )
            return BypassDecision(approved=False, reason="Policy does not allow bypass")

        if bypass_type not in policy.bypass_conditions:
            return BypassDecision(
                approved=False,
                reason=f"Bypass type '{bypass_type}' not permitted for this policy",
                conditions=tuple(sorted(policy.bypass_conditions)),
            )

        if bypass_type not in APPROVED_BYPASS_TYPES:
            return BypassDecision(approved=False, reason="Bypass denied")

        logger.warning(
            "Security policy bypass approved",
            extra={
                "ticket_id": ticket_id,
                "user_id": user_id,
                "policy_id": policy_id,
                "bypass_type": bypass_type,
                "bypass_reason": reason,
            }
        )
        self._record_violation(
            ticket_id=ticket_id,
            user_id=user_id,
            policy_id=policy_id,
            violation_type=ViolationType.POLICY_VIOLATION,
            description=f"Policy bypassed: {policy.name} ({bypass_type})",
            severity=PolicySeverity.HIGH,
            timestamp=now,
            resolved=True,
            resolution_notes=reason,
        )
        return BypassDecision(
            approved=True,
            reason="Bypass approved with conditions",
            conditions=(f"Document reason: {reason}", "Review required within 24 hours"),
        )

    # ---------- Violations ----------

    def _record_violation(
        self,
        resolved: bool = False,
        resolution_notes: Optional[str] = None,
        **fields,
    ) -> SecurityViolation:
        violation = SecurityViolation(
            id=f"viol_{uuid4().hex[:12]}",
            resolved=resolved,
            resolution_notes=resolution_notes,
            **fields,
        )
        with self._violations_lock:
            self._violations[violation.id] = violation
        return violation

    def get_violations(
        self, ticket_id: Optional[str] = None, user_id: Optional[str] = None
    ) -> List[SecurityViolation]:
        """Violations matching the filters, newest first."""
        with self._violations_lock:
            violations = list(self._violations.values())

        if ticket_id:
            violations = [v for v in violations if v.ticket_id == ticket_id]
        if user_id:
            violations = [v for v in violations if v.user_id == user_id]

        # Stable sort on reversed insertion order keeps later records first on ties
        return sorted(reversed(violations), key=lambda v: v.timestamp, reverse=True)

    def resolve_violation(self, violation_id: str, resolution_notes: str) -> SecurityViolation:
        with self._violations_lock:
            violation = self._violations.get(violation_id)
            if violation is None:
                raise ViolationNotFoundException(violation_id)
            violation.resolve(resolution_notes)

        logger.info(
            "Security violation resolved",
            extra={"violation_id": violation_id, "resolution_notes": resolution_notes}
        )
        return violation

    def get_security_insights(
        self, user_id: Optional[str] = None, now: Optional[datetime] = None
    ) -> SecurityInsights:
        """
        Violation overview for one user, or everyone.

        The compliance score is the share of access evaluations that were
        allowed (100 when nothing was evaluated yet).
        """
        now = now or datetime.now(timezone.utc)
        violations = self.get_violations(user_id=user_id)

        with self._violations_lock:
            if user_id:
                evaluations, compliant = self._evaluation_counts.get(user_id, [0, 0])
            else:
                evaluations = sum(c[0] for c in self._evaluation_counts.values())
                compliant = sum(c[1] for c in self._evaluation_counts.values())
        compliance_score = round(compliant / evaluations * 100) if evaluations else 100

        recent = [v for v in violations if now - v.timestamp <= RECENT_VIOLATION_WINDOW][:10]

        by_type = Counter(v.violation_type for v in violations)
        risk_areas = [violation_type for violation_type, _ in by_type.most_common(3)]

        recommendations = []
        if compliance_score < 80:
            recommendations.append("Review security policy training")
        if ViolationType.INCOMPLETE_VERIFICATION in risk_areas:
            recommendations.append("Focus on completing all verification steps")
        if ViolationType.BYPASS_ATTEMPT in risk_areas:
            recommendations.append("Understand when bypasses are appropriate")

        return SecurityInsights(
            total_violations=len(violations),
            recent_violations=[ViolationSummary(**asdict(v)) for v in recent],
            compliance_score=compliance_score,
            risk_areas=risk_areas,
            recommendations=recommendations,
        )

    # ---------- Policies ----------

    def validate_field(self, field: str, value: str) -> List[str]:
        """
        Apply the validation rules of every requirement on ``field``.

        Returns the error messages; an empty list means the value is valid.
        Unknown fields have no rules.
        """
        errors: List[str] = []
        for policy in self._policies.values():
            for requirement in policy.requirements:
                if requirement.field != field:
                    continue
                for rule in requirement.validation_rules:
                    error = rule.check(value)
                    if error:
                        errors.append(error)
        return list(_unique(errors))

    def get_security_policies(self) -> List[SecurityPolicy]:
        return list(self._policies.values())

    def get_security_policy(self, policy_id: str) -> Optional[SecurityPolicy]:
        return self._policies.get(policy_id)
