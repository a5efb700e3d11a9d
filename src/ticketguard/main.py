"""
TicketGuard - Composition Root
===============================

SLA timing, escalation and verification-gate engine.

Modules:
- SLA: Deadlines, breaches, alerts and auto-escalation
- Security: Policy evaluation and bypass decisions
- Verification: Per (ticket, user) gates in front of ticket actions
- Alerts: Alert storage, rules and acknowledgements

Every service is constructed once by ``build_engine`` and passed to its
collaborators explicitly. The engine starts no threads unless the
embedding service calls ``TicketGuardEngine.start``.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from pydantic import BaseModel

from ticketguard.alerts.application.services import ActionHook, AlertService, INotificationChannel
from ticketguard.alerts.infrastructure.notifications import LoggingNotificationChannel
from ticketguard.config import AlertActionType, Settings, get_settings
from ticketguard.security.application.services import SecurityPolicyEngine
from ticketguard.sla.application.dto import EvaluationSummary
from ticketguard.sla.application.services import (
    ITicketRepository, SLAEvaluationService, SLAService
)
from ticketguard.sla.domain.value_objects import BusinessCalendar
from ticketguard.sla.infrastructure.external import SLAConfigManager, SLAScheduler
from ticketguard.sla.infrastructure.repositories import InMemoryTicketRepository
from ticketguard.verification.application.services import (
    IActionExecutor, IVerificationStatusSource, VerificationGateManager
)
from ticketguard.verification.infrastructure.adapters import (
    InMemoryVerificationStatusSource, LoggingActionExecutor
)
from ticketguard.shared.infrastructure.logging import get_logger, log_latency, setup_logging

logger = get_logger(__name__)


class SweepReport(BaseModel):
    """What one maintenance sweep did."""
    sla: EvaluationSummary
    deferred_actions_run: int = 0
    cache_entries_purged: int = 0
    gates_swept: int = 0
    alerts_pruned: int = 0


@dataclass
class TicketGuardEngine:
    """Container for the engine's services."""

    settings: Settings
    config_manager: SLAConfigManager
    ticket_repository: ITicketRepository
    sla_service: SLAService
    evaluation_service: SLAEvaluationService
    policy_engine: SecurityPolicyEngine
    gate_manager: VerificationGateManager
    alert_service: AlertService
    scheduler: Optional[SLAScheduler] = None
    _sweep_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def run_sweep(self, now: Optional[datetime] = None) -> SweepReport:
        """
        Run every periodic maintenance task once.

        SLA evaluation of active tickets, due deferred alert actions,
        decision-cache purge, closed-gate sweep and alert-history pruning.
        Concurrent calls are serialised.
        """
        now = now or datetime.now(timezone.utc)
        interval = self.settings.sweep_interval_seconds
        budget_ms = interval * 1000 if interval else None
        with self._sweep_lock, log_latency(logger, "ticketguard_sweep", slow_after_ms=budget_ms):
            sla_summary = self.evaluation_service.evaluate_all_tickets(now)
            return SweepReport(
                sla=sla_summary,
                deferred_actions_run=self.alert_service.run_due_actions(now),
                cache_entries_purged=self.policy_engine.purge_expired_cache(),
                gates_swept=self.gate_manager.sweep_closed_gates(now),
                alerts_pruned=self.alert_service.prune_history(now),
            )

    def start(self, watch_config: bool = True) -> None:
        """Start the sweep scheduler and config watcher (if configured)."""
        if watch_config and self.settings.sla_config_path is not None:
            self.config_manager.start_watching()

        if self.settings.sweep_interval_seconds and self.scheduler is None:
            self.scheduler = SLAScheduler(interval_seconds=self.settings.sweep_interval_seconds)
            self.scheduler.start(self._scheduled_sweep)

    def _scheduled_sweep(self) -> None:
        try:
            self.run_sweep()
        except Exception as e:
            logger.error("Scheduled sweep failed", extra={"error": str(e)})

    def shutdown(self) -> None:
        """Stop the scheduler and config watcher."""
        if self.scheduler is not None:
            self.scheduler.stop()
            self.scheduler = None
        self.config_manager.stop_watching()
        logger.info("TicketGuard engine stopped")


def build_engine(
    settings: Optional[Settings] = None,
    ticket_repository: Optional[ITicketRepository] = None,
    verification_source: Optional[IVerificationStatusSource] = None,
    action_executor: Optional[IActionExecutor] = None,
    notification_channel: Optional[INotificationChannel] = None,
    action_hooks: Optional[Dict[AlertActionType, ActionHook]] = None,
) -> TicketGuardEngine:
    """
    Construct the engine.

    Collaborators default to the in-memory / logging implementations.
    """
    settings = settings or get_settings()

    alert_service = AlertService(
        notification_channel=notification_channel or LoggingNotificationChannel(),
        action_hooks=action_hooks,
        history_retention=timedelta(days=settings.alert_history_retention_days),
    )

    def _on_config_reload(manager: SLAConfigManager) -> None:
        alert_service.replace_alert_rules(manager.alert_rules)

    config_manager = SLAConfigManager(on_reload=_on_config_reload)
    if settings.sla_config_path is not None:
        logger.info("Loading SLA configuration", extra={"path": str(settings.sla_config_path)})
        config_manager.load(settings.sla_config_path)
        alert_service.replace_alert_rules(config_manager.alert_rules)

    calendar = BusinessCalendar(
        timezone_name=settings.business_timezone,
        start_hour=settings.business_day_start_hour,
        end_hour=settings.business_day_end_hour,
    )
    sla_service = SLAService(
        config_manager,
        calendar=calendar,
        response_lead_minutes=settings.response_due_lead_minutes,
        resolution_lead_hours=settings.resolution_due_lead_hours,
    )

    ticket_repository = ticket_repository or InMemoryTicketRepository()
    policy_engine = SecurityPolicyEngine(cache_ttl_seconds=settings.decision_cache_ttl_seconds)
    gate_manager = VerificationGateManager(
        policy_engine=policy_engine,
        status_source=verification_source or InMemoryVerificationStatusSource(),
        action_executor=action_executor or LoggingActionExecutor(),
        primary_policy_id=settings.primary_security_policy_id,
        gate_retention=timedelta(hours=settings.gate_retention_hours),
    )

    engine = TicketGuardEngine(
        settings=settings,
        config_manager=config_manager,
        ticket_repository=ticket_repository,
        sla_service=sla_service,
        evaluation_service=SLAEvaluationService(ticket_repository, sla_service, alert_service),
        policy_engine=policy_engine,
        gate_manager=gate_manager,
        alert_service=alert_service,
    )

    logger.info(
        "TicketGuard engine built",
        extra={
            "version": settings.app_version,
            "environment": settings.environment,
            "business_timezone": settings.business_timezone,
        }
    )
    return engine


def main() -> None:
    """Run the engine standalone with its scheduler until interrupted."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.environment)

    engine = build_engine(settings)
    engine.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        engine.shutdown()


if __name__ == "__main__":
    main()
