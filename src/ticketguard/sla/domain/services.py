"""
SLA Domain Services
===================

Stateless business logic over ticket snapshots.

Every method is a pure function of its inputs (ticket snapshot, policy
table, calendar and ``now``); none of them raise on odd ticket data.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional

from ticketguard.config import (
    AlertSeverity, AlertType, BreachType, TicketStatus
)
from ticketguard.sla.domain.entities import (
    EscalationHistoryEntry, SLAAlert, SLATrackingUpdate, TicketSnapshot
)
from ticketguard.sla.domain.value_objects import (
    BreachCheck,
    BusinessCalendar,
    ElapsedTime,
    EscalationDecision,
    SLAConfiguration,
    SLAPolicyTable,
)

RESOLUTION_CLOCK_STATUSES = (
    TicketStatus.OPEN, TicketStatus.IN_PROGRESS, TicketStatus.ESCALATED
)


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


class _PolicyAware:
    """Shared access to the policy table and business calendar."""

    def __init__(self, policy_table: SLAPolicyTable, calendar: BusinessCalendar):
        self._policy_table = policy_table
        self._calendar = calendar

    @property
    def policy_table(self) -> SLAPolicyTable:
        return self._policy_table

    def configuration_for(self, ticket: TicketSnapshot) -> SLAConfiguration:
        return self._policy_table.get(ticket.priority)

    def elapsed(self, ticket: TicketSnapshot, now: Optional[datetime] = None) -> ElapsedTime:
        config = self.configuration_for(ticket)
        return self._calendar.elapsed(ticket, config.business_hours_only, now)


class BreachDetector(_PolicyAware):
    """
    Decides whether a ticket's response, resolution or escalation deadline
    has passed.

    Deadlines come from the ticket's own SLA tracking record (copied from
    the policy when the ticket was created); the business-hours flag comes
    from the policy table.
    """

    def check_breach(self, ticket: TicketSnapshot, now: Optional[datetime] = None) -> BreachCheck:
        """
        Check the three SLA clocks in order: response, resolution, escalation.

        The first breached clock wins; only one breach type is reported.
        """
        tracking = ticket.sla_tracking
        elapsed = self.elapsed(ticket, now).business_hours

        # Response
        if ticket.status == TicketStatus.OPEN and tracking.actual_response_time is None:
            response_hours = tracking.response_time_minutes / 60
            if elapsed > response_hours:
                overdue = elapsed - response_hours
                return BreachCheck(
                    is_breached=True,
                    breach_type=BreachType.RESPONSE,
                    time_overdue=overdue,
                    severity=AlertSeverity.CRITICAL if overdue > response_hours else AlertSeverity.HIGH,
                )

        # Resolution
        if ticket.status in RESOLUTION_CLOCK_STATUSES:
            if elapsed > tracking.resolution_time_hours:
                overdue = elapsed - tracking.resolution_time_hours
                return BreachCheck(
                    is_breached=True,
                    breach_type=BreachType.RESOLUTION,
                    time_overdue=overdue,
                    severity=(
                        AlertSeverity.CRITICAL
                        if overdue > tracking.resolution_time_hours / 2
                        else AlertSeverity.HIGH
                    ),
                )

        # Escalation
        if ticket.status != TicketStatus.ESCALATED and elapsed > tracking.escalation_time_hours:
            return BreachCheck(
                is_breached=True,
                breach_type=BreachType.ESCALATION,
                time_overdue=elapsed - tracking.escalation_time_hours,
                severity=AlertSeverity.MEDIUM,
            )

        return BreachCheck.not_breached()

    def update_sla_tracking(
        self,
        ticket: TicketSnapshot,
        new_status: TicketStatus,
        now: Optional[datetime] = None,
    ) -> SLATrackingUpdate:
        """
        Compute the SLA tracking changes implied by a status change.

        - first response is recorded (minutes, wall clock) when an OPEN
          ticket moves to IN_PROGRESS or already has an assignee
        - resolution is recorded (hours, wall clock) when the ticket is resolved
        - the first detected breach flips ``sla_breached`` with a reason
        """
        tracking = ticket.sla_tracking
        total_hours = self._calendar.elapsed(ticket, False, now).total_hours

        actual_response_time = None
        if (
            ticket.status == TicketStatus.OPEN
            and (new_status == TicketStatus.IN_PROGRESS or ticket.assigned_to)
            and tracking.actual_response_time is None
        ):
            actual_response_time = total_hours * 60

        actual_resolution_time = None
        if new_status == TicketStatus.RESOLVED and tracking.actual_resolution_time is None:
            actual_resolution_time = total_hours

        sla_breached = None
        breach_reason = None
        if not tracking.sla_breached:
            breach = self.check_breach(_with_status(ticket, new_status), now)
            if breach.is_breached:
                sla_breached = True
                breach_reason = (
                    f"{breach.breach_type.value} SLA breached by "
                    f"{breach.time_overdue:.1f} hours"
                )

        return SLATrackingUpdate(
            actual_response_time=actual_response_time,
            actual_resolution_time=actual_resolution_time,
            sla_breached=sla_breached,
            breach_reason=breach_reason,
        )


def _with_status(ticket: TicketSnapshot, status: TicketStatus) -> TicketSnapshot:
    return replace(ticket, status=status)


class AlertGenerator(_PolicyAware):
    """
    Produces SLA alerts for a ticket.

    The three clocks are evaluated independently, so a single call can
    return several alerts. Alert ids are derived from the ticket and the
    clock, which makes repeated sweeps idempotent downstream.
    """

    def __init__(
        self,
        policy_table: SLAPolicyTable,
        calendar: BusinessCalendar,
        response_lead_minutes: float = 15,
        resolution_lead_hours: float = 2,
    ):
        super().__init__(policy_table, calendar)
        self.response_lead_hours = response_lead_minutes / 60
        self.resolution_lead_hours = resolution_lead_hours

    def generate_alerts(self, ticket: TicketSnapshot, now: Optional[datetime] = None) -> List[SLAAlert]:
        now = _now(now)
        tracking = ticket.sla_tracking
        elapsed = self.elapsed(ticket, now).business_hours
        alerts: List[SLAAlert] = []

        if ticket.status == TicketStatus.OPEN and tracking.actual_response_time is None:
            time_until_due = tracking.response_time_minutes / 60 - elapsed
            if time_until_due <= 0:
                alerts.append(self._alert(
                    ticket, "response-overdue", AlertType.SLA_BREACH, AlertSeverity.CRITICAL,
                    f"Response SLA breached for ticket {ticket.display_id}. "
                    f"Overdue by {abs(time_until_due):.1f} hours.",
                    ["assigned-tech", "team-lead"], ["email", "sms"], now,
                ))
            elif time_until_due <= self.response_lead_hours:
                alerts.append(self._alert(
                    ticket, "response-due", AlertType.RESPONSE_DUE, AlertSeverity.HIGH,
                    f"Response due in {time_until_due * 60:.0f} minutes "
                    f"for ticket {ticket.display_id}.",
                    ["assigned-tech"], ["email"], now,
                ))

        if ticket.status in RESOLUTION_CLOCK_STATUSES:
            time_until_due = tracking.resolution_time_hours - elapsed
            if time_until_due <= 0:
                alerts.append(self._alert(
                    ticket, "resolution-overdue", AlertType.SLA_BREACH, AlertSeverity.CRITICAL,
                    f"Resolution SLA breached for ticket {ticket.display_id}. "
                    f"Overdue by {abs(time_until_due):.1f} hours.",
                    ["assigned-tech", "team-lead", "manager"], ["email", "sms"], now,
                ))
            elif time_until_due <= self.resolution_lead_hours:
                alerts.append(self._alert(
                    ticket, "resolution-due", AlertType.RESOLUTION_DUE, AlertSeverity.HIGH,
                    f"Resolution due in {time_until_due:.1f} hours "
                    f"for ticket {ticket.display_id}.",
                    ["assigned-tech"], ["email"], now,
                ))

        if ticket.status != TicketStatus.ESCALATED:
            if tracking.escalation_time_hours - elapsed <= 0:
                alerts.append(self._alert(
                    ticket, "escalation-required", AlertType.ESCALATION_REQUIRED, AlertSeverity.HIGH,
                    f"Ticket {ticket.display_id} requires escalation. "
                    f"Escalation time threshold exceeded.",
                    ["assigned-tech", "team-lead"], ["email"], now,
                ))

        return alerts

    @staticmethod
    def _alert(
        ticket: TicketSnapshot,
        suffix: str,
        alert_type: AlertType,
        severity: AlertSeverity,
        message: str,
        target_users: List[str],
        channels: List[str],
        now: datetime,
    ) -> SLAAlert:
        return SLAAlert(
            id=f"sla-alert-{ticket.id}-{suffix}",
            ticket_id=ticket.id,
            type=alert_type,
            severity=severity,
            message=message,
            target_users=target_users,
            channels=channels,
            created_at=now,
        )


class EscalationDecider(_PolicyAware):
    """Decides when a ticket should climb to its next escalation tier."""

    def should_auto_escalate(
        self, ticket: TicketSnapshot, now: Optional[datetime] = None
    ) -> EscalationDecision:
        """
        Select the first auto-escalating tier (ascending level) whose
        threshold has passed and which the ticket has not reached yet.

        Tiers are never skipped: only the lowest eligible tier is returned.
        """
        config = self.configuration_for(ticket)
        elapsed = self.elapsed(ticket, now).business_hours
        current_level = ticket.sla_tracking.escalation_level

        for tier in sorted(config.escalation_levels, key=lambda t: t.level):
            if (
                tier.auto_escalate
                and elapsed >= tier.time_threshold_hours
                and current_level < tier.level
            ):
                return EscalationDecision(
                    should_escalate=True,
                    escalation_level=tier.level,
                    escalate_to=tier.escalate_to,
                    reason=(
                        f"Auto-escalation triggered: {tier.time_threshold_hours:g} "
                        f"hour threshold exceeded"
                    ),
                    notification_channels=tier.notification_channels,
                )

        return EscalationDecision(
            should_escalate=False,
            escalation_level=current_level,
        )

    @staticmethod
    def build_escalation_entry(
        decision: EscalationDecision,
        now: Optional[datetime] = None,
        escalated_by: str = "system",
    ) -> EscalationHistoryEntry:
        """History entry the caller appends when applying an escalation."""
        if not decision.should_escalate:
            raise ValueError("cannot build an escalation entry for a negative decision")
        return EscalationHistoryEntry(
            level=decision.escalation_level,
            timestamp=_now(now),
            reason=decision.reason,
            escalated_by=escalated_by,
            escalated_to=tuple(decision.escalate_to),
        )
