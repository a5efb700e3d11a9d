"""
SLA Application Services
=========================

Application services orchestrate the SLA domain services and coordinate
with the external ticket store and the alert sink.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (interfaces), not concrete implementations
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from ticketguard.config import ACTIVE_STATUSES, Priority, TicketStatus, VALID_PRIORITIES
from ticketguard.sla.application.dto import (
    CategoryStat,
    EvaluationSummary,
    PerformanceReport,
    ReportPeriod,
    SLAMetrics,
    TrendPoint,
)
from ticketguard.sla.domain.entities import (
    EscalationHistoryEntry, SLAAlert, SLATrackingUpdate, TicketSnapshot
)
from ticketguard.sla.domain.services import AlertGenerator, BreachDetector, EscalationDecider
from ticketguard.sla.domain.value_objects import (
    BreachCheck,
    BusinessCalendar,
    ElapsedTime,
    EscalationDecision,
    SLAConfiguration,
    SLAPolicyTable,
    as_utc,
)
from ticketguard.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Collaborator Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Narrow interface onto the external ticket store."""

    @abstractmethod
    def get_ticket(self, ticket_id: str) -> TicketSnapshot:
        """Get a ticket snapshot. Raises TicketNotFoundException if unknown."""

    @abstractmethod
    def apply_sla_update(self, ticket_id: str, update: SLATrackingUpdate) -> TicketSnapshot:
        """Apply a partial SLA tracking update."""

    @abstractmethod
    def apply_escalation(
        self, ticket_id: str, level: int, entry: EscalationHistoryEntry
    ) -> TicketSnapshot:
        """Raise the escalation level and append the history entry."""

    @abstractmethod
    def list_active(self) -> List[TicketSnapshot]:
        """Tickets whose SLA clocks are still running."""


class ISLAConfigProvider(ABC):
    """Interface for SLA configuration access."""

    @abstractmethod
    def get_policy_table(self) -> SLAPolicyTable:
        """Get the current SLA policy table."""


class IAlertSink(ABC):
    """Receiver for generated SLA alerts."""

    @abstractmethod
    def process_alert(self, alert: SLAAlert, now: Optional[datetime] = None) -> bool:
        """Store (and act on) an alert. Returns False for duplicates."""


class StaticSLAConfigProvider(ISLAConfigProvider):
    """Config provider over a fixed policy table."""

    def __init__(self, policy_table: Optional[SLAPolicyTable] = None):
        self._policy_table = policy_table or SLAPolicyTable()

    def get_policy_table(self) -> SLAPolicyTable:
        return self._policy_table


# ========== Application Services ==========

class SLAService:
    """
    Facade over the SLA domain services.

    Domain services are rebuilt from the config provider on each call so a
    reloaded policy table takes effect without restarting.
    """

    def __init__(
        self,
        config_provider: ISLAConfigProvider,
        calendar: Optional[BusinessCalendar] = None,
        response_lead_minutes: float = 15,
        resolution_lead_hours: float = 2,
    ):
        self._config_provider = config_provider
        self._calendar = calendar or BusinessCalendar()
        self._response_lead_minutes = response_lead_minutes
        self._resolution_lead_hours = resolution_lead_hours

    @property
    def calendar(self) -> BusinessCalendar:
        return self._calendar

    @property
    def policy_table(self) -> SLAPolicyTable:
        return self._config_provider.get_policy_table()

    @property
    def breach_detector(self) -> BreachDetector:
        return BreachDetector(self.policy_table, self._calendar)

    @property
    def alert_generator(self) -> AlertGenerator:
        return AlertGenerator(
            self.policy_table,
            self._calendar,
            response_lead_minutes=self._response_lead_minutes,
            resolution_lead_hours=self._resolution_lead_hours,
        )

    @property
    def escalation_decider(self) -> EscalationDecider:
        return EscalationDecider(self.policy_table, self._calendar)

    # ---------- Single-ticket operations ----------

    def get_sla_configuration(self, priority: Priority) -> SLAConfiguration:
        return self.policy_table.get(priority)

    def business_hours_between(self, start: datetime, end: datetime) -> int:
        return self._calendar.business_hours_between(start, end)

    def calculate_elapsed_time(
        self,
        ticket: TicketSnapshot,
        business_hours_only: bool = False,
        now: Optional[datetime] = None,
    ) -> ElapsedTime:
        return self._calendar.elapsed(ticket, business_hours_only, now)

    def check_breach(self, ticket: TicketSnapshot, now: Optional[datetime] = None) -> BreachCheck:
        return self.breach_detector.check_breach(ticket, now)

    def generate_alerts(self, ticket: TicketSnapshot, now: Optional[datetime] = None) -> List[SLAAlert]:
        return self.alert_generator.generate_alerts(ticket, now)

    def should_auto_escalate(
        self, ticket: TicketSnapshot, now: Optional[datetime] = None
    ) -> EscalationDecision:
        return self.escalation_decider.should_auto_escalate(ticket, now)

    def build_escalation_entry(
        self,
        decision: EscalationDecision,
        now: Optional[datetime] = None,
        escalated_by: str = "system",
    ) -> EscalationHistoryEntry:
        return EscalationDecider.build_escalation_entry(decision, now, escalated_by)

    def update_sla_tracking(
        self,
        ticket: TicketSnapshot,
        new_status: TicketStatus,
        now: Optional[datetime] = None,
    ) -> SLATrackingUpdate:
        return self.breach_detector.update_sla_tracking(ticket, new_status, now)

    # ---------- Reporting ----------

    def calculate_sla_metrics(
        self, tickets: Iterable[TicketSnapshot], now: Optional[datetime] = None
    ) -> SLAMetrics:
        """
        Calculate SLA metrics for a set of tickets.

        Averages only include tickets that have the corresponding actual
        time recorded.
        """
        detector = self.breach_detector
        tickets = list(tickets)

        within = breached = escalated = 0
        response_times: List[float] = []
        resolution_times: List[float] = []

        for ticket in tickets:
            if detector.check_breach(ticket, now).is_breached:
                breached += 1
            else:
                within += 1

            tracking = ticket.sla_tracking
            if tracking.actual_response_time is not None:
                response_times.append(tracking.actual_response_time)
            if tracking.actual_resolution_time is not None:
                resolution_times.append(tracking.actual_resolution_time)
            if ticket.status == TicketStatus.ESCALATED or tracking.escalation_level > 0:
                escalated += 1

        return SLAMetrics(
            total_tickets=len(tickets),
            within_sla=within,
            breached_sla=breached,
            average_response_time=_mean(response_times),
            average_resolution_time=_mean(resolution_times),
            escalation_rate=(escalated / len(tickets) * 100) if tickets else 0.0,
        )

    def generate_performance_report(
        self,
        tickets: Iterable[TicketSnapshot],
        start: datetime,
        end: datetime,
        now: Optional[datetime] = None,
        top_n: int = 5,
    ) -> PerformanceReport:
        """
        SLA performance report for tickets created within [start, end].

        Trends are daily buckets keyed by creation date. Naive bounds and
        creation times are read as UTC.
        """
        start, end = as_utc(start), as_utc(end)
        in_period = [t for t in tickets if start <= as_utc(t.created_at) <= end]

        by_priority = {
            priority: self.calculate_sla_metrics(
                [t for t in in_period if t.priority == priority], now
            )
            for priority in VALID_PRIORITIES
        }

        return PerformanceReport(
            period=ReportPeriod(start=start, end=end),
            overview=self.calculate_sla_metrics(in_period, now),
            by_priority=by_priority,
            trends=self._daily_trends(in_period, start, end),
            top_issues=self._top_issues(in_period, top_n),
        )

    @staticmethod
    def _daily_trends(
        tickets: List[TicketSnapshot], start: datetime, end: datetime
    ) -> List[TrendPoint]:
        buckets: Dict[date, List[TicketSnapshot]] = defaultdict(list)
        for ticket in tickets:
            buckets[as_utc(ticket.created_at).date()].append(ticket)

        points = []
        day = start.date()
        while day <= end.date():
            day_tickets = buckets.get(day, [])
            points.append(TrendPoint(
                day=day,
                ticket_count=len(day_tickets),
                average_response_time=_mean([
                    t.sla_tracking.actual_response_time for t in day_tickets
                    if t.sla_tracking.actual_response_time is not None
                ]),
                average_resolution_time=_mean([
                    t.sla_tracking.actual_resolution_time for t in day_tickets
                    if t.sla_tracking.actual_resolution_time is not None
                ]),
            ))
            day += timedelta(days=1)
        return points

    @staticmethod
    def _top_issues(tickets: List[TicketSnapshot], top_n: int) -> List[CategoryStat]:
        categories: Dict[str, List[TicketSnapshot]] = defaultdict(list)
        for ticket in tickets:
            categories[ticket.category or "uncategorized"].append(ticket)

        stats = [
            CategoryStat(
                category=category,
                count=len(members),
                average_resolution_time=_mean([
                    t.sla_tracking.actual_resolution_time for t in members
                    if t.sla_tracking.actual_resolution_time is not None
                ]),
            )
            for category, members in categories.items()
        ]
        stats.sort(key=lambda s: s.count, reverse=True)
        return stats[:top_n]


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


class SLAEvaluationService:
    """
    Sweeps active tickets: records SLA breaches, applies auto-escalations
    and hands generated alerts to the alert sink.

    Run by an external scheduler; it has no timer of its own.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        sla_service: SLAService,
        alert_sink: Optional[IAlertSink] = None,
    ):
        self._ticket_repo = ticket_repository
        self._sla_service = sla_service
        self._alert_sink = alert_sink

    def evaluate_all_tickets(self, now: Optional[datetime] = None) -> EvaluationSummary:
        """
        Evaluate SLA for all active tickets.

        A failure on one ticket is logged and recorded in the summary; it
        does not stop the sweep.
        """
        now = now or datetime.now(timezone.utc)
        summary = EvaluationSummary()

        for ticket in self._ticket_repo.list_active():
            if ticket.status not in ACTIVE_STATUSES:
                continue
            summary.tickets_evaluated += 1
            try:
                self._evaluate_ticket(ticket, now, summary)
            except Exception as e:
                logger.error(
                    "SLA evaluation failed for ticket",
                    extra={"ticket_id": ticket.id, "error": str(e)}
                )
                summary.errors.append(f"{ticket.id}: {e}")

        logger.info(
            "SLA evaluation sweep finished",
            extra=summary.model_dump(exclude={"errors"})
        )
        return summary

    def evaluate_ticket(self, ticket_id: str, now: Optional[datetime] = None) -> EvaluationSummary:
        """Evaluate one ticket on demand (e.g. after a status change)."""
        now = now or datetime.now(timezone.utc)
        summary = EvaluationSummary(tickets_evaluated=1)
        self._evaluate_ticket(self._ticket_repo.get_ticket(ticket_id), now, summary)
        return summary

    def _evaluate_ticket(
        self, ticket: TicketSnapshot, now: datetime, summary: EvaluationSummary
    ) -> None:
        update = self._sla_service.update_sla_tracking(ticket, ticket.status, now)
        if not update.is_empty:
            ticket = self._ticket_repo.apply_sla_update(ticket.id, update)
            summary.tracking_updates += 1
            if update.sla_breached:
                logger.warning(
                    "SLA breached",
                    extra={"ticket_id": ticket.id, "breach_reason": update.breach_reason}
                )

        decision = self._sla_service.should_auto_escalate(ticket, now)
        if decision.should_escalate:
            entry = self._sla_service.build_escalation_entry(decision, now)
            ticket = self._ticket_repo.apply_escalation(ticket.id, decision.escalation_level, entry)
            summary.escalations += 1
            logger.info(
                "Ticket auto-escalated",
                extra={
                    "ticket_id": ticket.id,
                    "escalation_level": decision.escalation_level,
                    "escalate_to": list(decision.escalate_to),
                }
            )

        alerts = self._sla_service.generate_alerts(ticket, now)
        summary.alerts_generated += len(alerts)
        if self._alert_sink is not None:
            for alert in alerts:
                self._alert_sink.process_alert(alert, now)
