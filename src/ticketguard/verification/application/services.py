"""
Verification Application Services
==================================

Per (ticket, user) verification gates in front of ticket actions.

The gate manager asks the security policy engine whether requested actions
may proceed, queues actions while a gate is blocked and flushes the queue
once verification completes or a bypass is approved.

Concurrency: every read-modify-write of one gate (including running or
queueing an action) holds that gate key's lock. Different keys never share
a lock.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ticketguard.config import (
    ActionType,
    BypassType,
    CRITICAL_VERIFICATION_FIELDS,
    GATED_ACTIONS,
    GateStatus,
)
from ticketguard.security.application.services import SecurityPolicyEngine
from ticketguard.verification.application.dto import GateActivity, VerificationInsights
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
from ticketguard.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

BLOCKED_REASON = "Customer verification required before this action can be completed"


# ========== Collaborator Interfaces (Dependency Inversion) ==========

class IVerificationStatusSource(ABC):
    """Where per-ticket verification progress lives."""

    @abstractmethod
    def get_status(self, ticket_id: str) -> Dict[str, bool]:
        """Map of verification field -> verified."""

    @abstractmethod
    def update_status(self, ticket_id: str, updates: Mapping[str, bool]) -> Dict[str, bool]:
        """Merge updates and return the full resulting status."""


class IActionExecutor(ABC):
    """Performs the actual ticket action once it is allowed through."""

    @abstractmethod
    def perform(self, action: TicketAction) -> ActionOutcome:
        """Run the action. Failures may be reported or raised."""


# ========== Gate Manager ==========

class VerificationGateManager:
    """
    Verification gate orchestration.

    Gates are keyed by ``(ticket_id, user_id)``. A gate that is not
    completed absorbs further requests for its key; once completed, the
    next request starts a fresh gate.
    """

    def __init__(
        self,
        policy_engine: SecurityPolicyEngine,
        status_source: IVerificationStatusSource,
        action_executor: IActionExecutor,
        primary_policy_id: str = "customer-identity-verification",
        gate_retention: timedelta = timedelta(hours=24),
    ):
        self._policy_engine = policy_engine
        self._status_source = status_source
        self._executor = action_executor
        self._primary_policy_id = primary_policy_id
        self._gate_retention = gate_retention

        self._gates: Dict[GateKey, VerificationGate] = {}
        self._pending: Dict[GateKey, List[TicketAction]] = {}
        self._locks: Dict[GateKey, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    # ---------- Locking ----------

    @contextmanager
    def _locked(self, key: GateKey):
        """
        Hold the lock for one gate key.

        Retries if the sweep dropped the lock between lookup and acquire.
        """
        while True:
            with self._locks_guard:
                lock = self._locks.setdefault(key, threading.RLock())
            lock.acquire()
            with self._locks_guard:
                current = self._locks.get(key)
            if current is lock:
                break
            lock.release()
        try:
            yield
        finally:
            lock.release()

    # ---------- Gates ----------

    def create_gate(
        self,
        ticket_id: str,
        user_id: str,
        actions: Iterable[ActionType],
        now: Optional[datetime] = None,
    ) -> VerificationGate:
        """
        Get or create the gate for (ticket, user).

        An existing gate that is not completed gets the actions merged in
        and keeps its status. Otherwise the actions are evaluated against
        the current verification status: open if allowed, blocked if not.
        """
        key = (ticket_id, user_id)
        with self._locked(key):
            return self._get_or_create(key, [ActionType(a) for a in actions], now).snapshot()

    def _get_or_create(
        self, key: GateKey, actions: List[ActionType], now: Optional[datetime]
    ) -> VerificationGate:
        existing = self._gates.get(key)
        if existing is not None and existing.status != GateStatus.COMPLETED:
            existing.merge_actions(actions)
            return existing

        ticket_id, user_id = key
        now = now or datetime.now(timezone.utc)
        status = self._status_source.get_status(ticket_id)
        decision = self._policy_engine.evaluate_access(ticket_id, user_id, actions, status, now)

        gate = VerificationGate(
            ticket_id=ticket_id,
            user_id=user_id,
            status=GateStatus.OPEN if decision.allowed else GateStatus.BLOCKED,
            created_at=now,
        )
        gate.merge_actions(actions)
        if not decision.allowed:
            gate.blocking_reasons = list(decision.required_actions) or [decision.reason]
        self._gates[key] = gate

        logger.info(
            "Verification gate created",
            extra={
                "ticket_id": ticket_id,
                "user_id": user_id,
                "status": gate.status.value,
                "requested_actions": [a.value for a in actions],
                "blocking_reasons": gate.blocking_reasons,
            }
        )
        return gate

    def get_gate(self, ticket_id: str, user_id: str) -> Optional[VerificationGate]:
        key = (ticket_id, user_id)
        with self._locked(key):
            gate = self._gates.get(key)
            return gate.snapshot() if gate else None

    # ---------- Actions ----------

    def requires_verification(self, action: TicketAction) -> bool:
        """Gated action types need a gate until the critical fields are verified."""
        if action.type not in GATED_ACTIONS:
            return False
        status = self._status_source.get_status(action.ticket_id)
        return not all(status.get(f, False) for f in CRITICAL_VERIFICATION_FIELDS)

    def execute_action(self, action: TicketAction, now: Optional[datetime] = None) -> ActionResult:
        """
        Run an action, or queue it behind a blocked gate.

        The block check and the run-or-enqueue step happen under the gate
        key's lock.
        """
        logger.info(
            "Executing ticket action",
            extra={
                "action_id": action.id,
                "action_type": action.type.value,
                "ticket_id": action.ticket_id,
                "user_id": action.user_id,
            }
        )

        if not self.requires_verification(action):
            return self._result(action, self._perform(action))

        key = action.gate_key
        with self._locked(key):
            gate = self._get_or_create(key, [action.type], now)
            if gate.status == GateStatus.BLOCKED:
                self._pending.setdefault(key, []).append(action)
                logger.info(
                    "Ticket action queued behind verification gate",
                    extra={"action_id": action.id, "ticket_id": action.ticket_id}
                )
                return ActionResult(
                    success=False,
                    blocked=True,
                    action_id=action.id,
                    reason=BLOCKED_REASON,
                    gate=gate.snapshot(),
                )
            return self._result(action, self._perform(action), gate.snapshot())

    @staticmethod
    def _result(
        action: TicketAction, outcome: ActionOutcome, gate: Optional[VerificationGate] = None
    ) -> ActionResult:
        return ActionResult(
            success=outcome.success,
            blocked=False,
            action_id=action.id,
            reason=outcome.reason,
            gate=gate,
        )

    def _perform(self, action: TicketAction) -> ActionOutcome:
        try:
            outcome = self._executor.perform(action)
        except Exception as e:
            logger.error(
                "Action execution failed",
                extra={"action_id": action.id, "action_type": action.type.value, "error": str(e)}
            )
            return ActionOutcome(success=False, reason=str(e))

        if not outcome.success:
            logger.error(
                "Action execution failed",
                extra={
                    "action_id": action.id,
                    "action_type": action.type.value,
                    "reason": outcome.reason,
                }
            )
        return outcome

    def _flush_pending(self, key: GateKey) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        """Run queued actions in enqueue order; failed ones stay queued."""
        executed: List[str] = []
        failed: List[str] = []
        remaining: List[TicketAction] = []

        for action in self._pending.get(key, []):
            if self._perform(action).success:
                executed.append(action.id)
                logger.info(
                    "Pending action executed",
                    extra={
                        "action_id": action.id,
                        "action_type": action.type.value,
                        "ticket_id": action.ticket_id,
                        "user_id": action.user_id,
                    }
                )
            else:
                failed.append(action.id)
                remaining.append(action)

        if remaining:
            self._pending[key] = remaining
        else:
            self._pending.pop(key, None)
        return tuple(executed), tuple(failed)

    def abandon_pending_actions(self, ticket_id: str, user_id: str) -> List[TicketAction]:
        """Drop every queued action for (ticket, user) and return them."""
        key = (ticket_id, user_id)
        with self._locked(key):
            abandoned = self._pending.pop(key, [])
        if abandoned:
            logger.info(
                "Pending actions abandoned",
                extra={"ticket_id": ticket_id, "user_id": user_id, "count": len(abandoned)}
            )
        return abandoned

    # ---------- Verification progress & bypass ----------

    def update_verification_progress(
        self,
        ticket_id: str,
        user_id: str,
        new_status: Mapping[str, bool],
        now: Optional[datetime] = None,
    ) -> ProgressResult:
        """
        Record verification progress and re-evaluate a blocked gate.

        When the gate's actions are now allowed the gate completes and the
        queued actions run in enqueue order. Gates that are not blocked are
        left untouched.
        """
        status = self._status_source.update_status(ticket_id, new_status)

        key = (ticket_id, user_id)
        with self._locked(key):
            gate = self._gates.get(key)
            if gate is None or gate.status != GateStatus.BLOCKED:
                return ProgressResult(gate=gate.snapshot() if gate else None)

            now = now or datetime.now(timezone.utc)
            decision = self._policy_engine.evaluate_access(
                ticket_id, user_id, gate.required_actions, status, now
            )
            if not decision.allowed:
                gate.blocking_reasons = list(decision.required_actions) or [decision.reason]
                return ProgressResult(gate=gate.snapshot())

            gate.complete(now)
            executed, failed = self._flush_pending(key)

            logger.info(
                "Verification gate completed",
                extra={
                    "ticket_id": ticket_id,
                    "user_id": user_id,
                    "executed": list(executed),
                    "failed": list(failed),
                }
            )
            return ProgressResult(
                gate=gate.snapshot(), opened=True, executed=executed, failed=failed
            )

    def bypass_gate(
        self,
        ticket_id: str,
        user_id: str,
        reason: str,
        bypass_type=BypassType.EMERGENCY_OVERRIDE,
        now: Optional[datetime] = None,
    ) -> BypassOutcome:
        """
        Request a bypass of the gate against the primary identity policy.

        On approval the gate becomes bypassed and queued actions run. On
        denial the gate is unchanged. Missing or already closed gates are
        reported without consulting the policy engine.
        """
        key = (ticket_id, user_id)
        with self._locked(key):
            gate = self._gates.get(key)
            if gate is None:
                return BypassOutcome(success=False, reason="Verification gate not found")
            if gate.is_terminal:
                return BypassOutcome(
                    success=False,
                    reason=f"Verification gate already {gate.status.value}",
                    gate=gate.snapshot(),
                )

            now = now or datetime.now(timezone.utc)
            decision = self._policy_engine.request_bypass(
                ticket_id, user_id, self._primary_policy_id, reason, bypass_type, now
            )
            if not decision.approved:
                return BypassOutcome(
                    success=False,
                    reason=decision.reason,
                    conditions=decision.conditions,
                    gate=gate.snapshot(),
                )

            gate.bypass(reason, now)
            executed, failed = self._flush_pending(key)

            logger.warning(
                "Verification gate bypassed",
                extra={
                    "ticket_id": ticket_id,
                    "user_id": user_id,
                    "bypass_reason": reason,
                    "conditions": list(decision.conditions),
                }
            )
            return BypassOutcome(
                success=True,
                reason=decision.reason,
                conditions=decision.conditions,
                gate=gate.snapshot(),
                executed=executed,
                failed=failed,
            )

    # ---------- Queries & sweeps ----------

    def get_gate_status(self, ticket_id: str, user_id: str) -> GateStatusReport:
        key = (ticket_id, user_id)
        verification_status = self._status_source.get_status(ticket_id)
        with self._locked(key):
            gate = self._gates.get(key)
            pending = tuple(self._pending.get(key, []))
            if gate is None:
                return GateStatusReport(
                    found=False,
                    verification_status=verification_status,
                    pending_actions=pending,
                )
            return GateStatusReport(
                found=True,
                verification_status=verification_status,
                gate=gate.snapshot(),
                blocked_actions=(
                    tuple(gate.required_actions) if gate.status == GateStatus.BLOCKED else ()
                ),
                pending_actions=pending,
            )

    def sweep_closed_gates(self, now: Optional[datetime] = None) -> int:
        """
        Drop terminal gates closed longer than the retention period,
        together with their leftover queue and key lock.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - self._gate_retention

        with self._locks_guard:
            candidates = [
                key for key, gate in list(self._gates.items())
                if gate.is_terminal and gate.completed_at and gate.completed_at < cutoff
            ]

        removed = 0
        for key in candidates:
            with self._locked(key):
                gate = self._gates.get(key)
                if not (gate and gate.is_terminal and gate.completed_at and gate.completed_at < cutoff):
                    continue
                del self._gates[key]
                leftover = self._pending.pop(key, [])
                if leftover:
                    logger.warning(
                        "Dropping failed actions with closed gate",
                        extra={"ticket_id": key[0], "user_id": key[1], "count": len(leftover)}
                    )
                with self._locks_guard:
                    self._locks.pop(key, None)
                removed += 1

        if removed:
            logger.info("Closed verification gates swept", extra={"removed": removed})
        return removed

    def get_verification_insights(self, user_id: str) -> VerificationInsights:
        with self._locks_guard:
            gates = [g.snapshot() for g in list(self._gates.values()) if g.user_id == user_id]

        closed = [g for g in gates if g.completed_at]
        average_minutes = (
            sum((g.completed_at - g.created_at).total_seconds() for g in closed) / len(closed) / 60
            if closed else 0.0
        )

        recent = sorted(gates, key=lambda g: g.created_at, reverse=True)[:10]
        return VerificationInsights(
            total_gates_created=len(gates),
            gates_blocked=sum(1 for g in gates if g.status == GateStatus.BLOCKED),
            gates_bypassed=sum(1 for g in gates if g.status == GateStatus.BYPASSED),
            average_resolution_time=average_minutes,
            recent_activity=[
                GateActivity(
                    ticket_id=g.ticket_id,
                    status=g.status,
                    created_at=g.created_at,
                    completed_at=g.completed_at,
                    actions=g.required_actions,
                )
                for g in recent
            ],
        )
