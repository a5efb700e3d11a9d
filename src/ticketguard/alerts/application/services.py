"""
Alert Application Services
===========================

Stateful sink for SLA alerts.

Stores active (unacknowledged) alerts, matches incoming alerts against
the configured rules and runs the rule actions against a notification
channel collaborator. Delivery is fire-and-forget: channel failures are
logged and never affect the alert itself.
"""

import itertools
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from ticketguard.alerts.application.dto import AlertStatistics
from ticketguard.alerts.domain.entities import AlertInstance, DeferredAction
from ticketguard.alerts.domain.value_objects import (
    AlertAction, AlertRule, DEFAULT_ALERT_RULES
)
from ticketguard.config import AlertActionType
from ticketguard.sla.application.services import IAlertSink
from ticketguard.sla.domain.entities import SLAAlert
from ticketguard.sla.domain.value_objects import as_utc
from ticketguard.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

ActionHook = Callable[[AlertAction, SLAAlert], None]


class INotificationChannel(ABC):
    """Outbound notification delivery (email, SMS, chat)."""

    @abstractmethod
    def send(self, alert: SLAAlert, channels: Sequence[str], targets: Sequence[str]) -> None:
        """Deliver the alert. May raise; callers log and continue."""


class AlertService(IAlertSink):
    """
    Alert storage, rule evaluation and acknowledgement tracking.

    One lock guards the alert maps, rule table and deferred-action queue;
    collaborator calls happen outside it.
    """

    def __init__(
        self,
        notification_channel: Optional[INotificationChannel] = None,
        rules: Optional[Iterable[AlertRule]] = None,
        action_hooks: Optional[Dict[AlertActionType, ActionHook]] = None,
        history_retention: timedelta = timedelta(days=30),
    ):
        self._channel = notification_channel
        self._rules: Dict[str, AlertRule] = {
            rule.id: rule for rule in (DEFAULT_ALERT_RULES if rules is None else rules)
        }
        self._action_hooks: Dict[AlertActionType, ActionHook] = dict(action_hooks or {})
        self._history_retention = history_retention

        self._active: Dict[str, SLAAlert] = {}
        self._history: Dict[str, SLAAlert] = {}
        self._instances: List[AlertInstance] = []
        self._deferred: List[DeferredAction] = []
        self._instance_ids = itertools.count(1)
        self._lock = threading.Lock()

    # ---------- Alert intake ----------

    def process_alert(self, alert: SLAAlert, now: Optional[datetime] = None) -> bool:
        """
        Store an alert and run the actions of every matching rule.

        No-op (returns False) when the alert is already acknowledged, or an
        alert with the same id is active or was acknowledged earlier.
        Disabled rules and rules in cooldown for the ticket are skipped.
        """
        now = now or datetime.now(timezone.utc)

        with self._lock:
            if alert.acknowledged or alert.id in self._active or alert.id in self._history:
                logger.debug("Alert already known, skipping", extra={"alert_id": alert.id})
                return False

            self._active[alert.id] = alert

            fired: List[AlertRule] = []
            for rule in self._rules.values():
                if not rule.enabled or not rule.matches(alert):
                    continue
                if self._in_cooldown(rule, alert.ticket_id, now):
                    logger.debug(
                        "Alert rule in cooldown",
                        extra={"rule_id": rule.id, "ticket_id": alert.ticket_id}
                    )
                    continue
                self._record_instance(rule, alert, now)
                fired.append(rule)

            immediate = []
            for rule in fired:
                for action in rule.actions:
                    if action.delay_seconds:
                        self._deferred.append(DeferredAction(
                            due_at=now + timedelta(seconds=action.delay_seconds),
                            rule_id=rule.id,
                            action=action,
                            alert=alert,
                        ))
                    else:
                        immediate.append((rule, action))

        for rule, action in immediate:
            self._execute_action(rule.id, action, alert)

        logger.info(
            "Processed alert",
            extra={
                "alert_id": alert.id,
                "ticket_id": alert.ticket_id,
                "severity": alert.severity.value,
                "rules_fired": [rule.id for rule in fired],
            }
        )
        return True

    def _in_cooldown(self, rule: AlertRule, ticket_id: str, now: datetime) -> bool:
        if not rule.cooldown_minutes:
            return False
        last = max(
            (
                instance.triggered_at for instance in self._instances
                if instance.rule_id == rule.id and instance.ticket_id == ticket_id
            ),
            default=None,
        )
        if last is None:
            return False
        return now - last < timedelta(minutes=rule.cooldown_minutes)

    def _record_instance(self, rule: AlertRule, alert: SLAAlert, now: datetime) -> None:
        self._instances.append(AlertInstance(
            id=f"instance-{next(self._instance_ids)}",
            rule_id=rule.id,
            alert_id=alert.id,
            ticket_id=alert.ticket_id,
            triggered_at=now,
            metadata={
                "alert_type": alert.type.value,
                "severity": alert.severity.value,
                "message": alert.message,
            },
        ))

    # ---------- Rule actions ----------

    def _execute_action(self, rule_id: str, action: AlertAction, alert: SLAAlert) -> None:
        try:
            if action.type == AlertActionType.NOTIFICATION:
                self._notify(action, alert)
                return

            hook = self._action_hooks.get(action.type)
            if hook is None:
                logger.info(
                    "No handler registered for alert action",
                    extra={
                        "rule_id": rule_id,
                        "action_type": action.type.value,
                        "ticket_id": alert.ticket_id,
                    }
                )
                return
            hook(action, alert)
        except Exception as e:
            logger.error(
                "Alert action failed",
                extra={
                    "rule_id": rule_id,
                    "action_type": action.type.value,
                    "alert_id": alert.id,
                    "error": str(e),
                }
            )

    def _notify(self, action: AlertAction, alert: SLAAlert) -> None:
        channels = list(action.config.get("channels") or alert.channels)
        targets = list(action.config.get("recipients") or alert.target_users)

        if self._channel is None:
            logger.debug("No notification channel configured", extra={"alert_id": alert.id})
            return

        self._channel.send(alert, channels, targets)
        logger.info(
            "Alert notification sent",
            extra={"alert_id": alert.id, "channels": channels, "targets": targets}
        )

    def run_due_actions(self, now: Optional[datetime] = None) -> int:
        """
        Execute deferred rule actions whose due time has passed.

        Actions for alerts acknowledged in the meantime are dropped.
        Returns the number of actions executed.
        """
        now = now or datetime.now(timezone.utc)
        with self._lock:
            due = sorted(
                (d for d in self._deferred if d.due_at <= now),
                key=lambda d: d.due_at,
            )
            self._deferred = [d for d in self._deferred if d.due_at > now]

        executed = 0
        for deferred in due:
            if deferred.alert.acknowledged:
                logger.debug(
                    "Dropping deferred action for acknowledged alert",
                    extra={"alert_id": deferred.alert.id, "rule_id": deferred.rule_id}
                )
                continue
            self._execute_action(deferred.rule_id, deferred.action, deferred.alert)
            executed += 1
        return executed

    @property
    def pending_action_count(self) -> int:
        with self._lock:
            return len(self._deferred)

    # ---------- Acknowledgement & queries ----------

    def acknowledge_alert(
        self, alert_id: str, user_id: str, now: Optional[datetime] = None
    ) -> bool:
        """Acknowledge an active alert and move it to history."""
        now = now or datetime.now(timezone.utc)
        with self._lock:
            alert = self._active.pop(alert_id, None)
            if alert is None:
                return False
            alert.acknowledge(user_id, now)
            self._history[alert_id] = alert
            for instance in self._instances:
                if instance.alert_id == alert_id:
                    instance.acknowledge(user_id, now)

        logger.info("Alert acknowledged", extra={"alert_id": alert_id, "user_id": user_id})
        return True

    def get_active_alerts(self) -> List[SLAAlert]:
        """Active alerts, most severe first; ties keep arrival order."""
        with self._lock:
            alerts = list(self._active.values())
        return sorted(alerts, key=lambda a: -a.severity.rank)

    def get_alert(self, alert_id: str) -> Optional[SLAAlert]:
        with self._lock:
            return self._active.get(alert_id) or self._history.get(alert_id)

    def get_alert_instances(self, alert_id: Optional[str] = None) -> List[AlertInstance]:
        with self._lock:
            return [i for i in self._instances if alert_id is None or i.alert_id == alert_id]

    def get_alert_statistics(self, start: datetime, end: datetime) -> AlertStatistics:
        """Counts over active and acknowledged alerts created in [start, end]; naive bounds are UTC."""
        start, end = as_utc(start), as_utc(end)
        with self._lock:
            alerts = [
                a for a in itertools.chain(self._active.values(), self._history.values())
                if start <= as_utc(a.created_at) <= end
            ]

        stats = AlertStatistics(total_alerts=len(alerts))
        ack_minutes = []
        for alert in alerts:
            stats.by_type[alert.type.value] = stats.by_type.get(alert.type.value, 0) + 1
            stats.by_severity[alert.severity.value] = stats.by_severity.get(alert.severity.value, 0) + 1
            if alert.acknowledged and alert.acknowledgment_minutes is not None:
                ack_minutes.append(alert.acknowledgment_minutes)

        stats.acknowledged_count = len(ack_minutes)
        if ack_minutes:
            stats.average_acknowledgment_time = sum(ack_minutes) / len(ack_minutes)
        return stats

    def prune_history(self, now: Optional[datetime] = None) -> int:
        """Drop acknowledged alerts (and their rule firings) past retention."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - self._history_retention
        with self._lock:
            expired = {
                alert_id for alert_id, alert in self._history.items()
                if (alert.acknowledged_at or alert.created_at) < cutoff
            }
            for alert_id in expired:
                del self._history[alert_id]
            self._instances = [i for i in self._instances if i.alert_id not in expired]

        if expired:
            logger.info("Pruned alert history", extra={"pruned": len(expired)})
        return len(expired)

    # ---------- Rule management ----------

    def set_alert_rule(self, rule: AlertRule) -> None:
        with self._lock:
            self._rules[rule.id] = rule
        logger.info("Set alert rule", extra={"rule_id": rule.id})

    def remove_alert_rule(self, rule_id: str) -> bool:
        with self._lock:
            removed = self._rules.pop(rule_id, None) is not None
        if removed:
            logger.info("Removed alert rule", extra={"rule_id": rule_id})
        return removed

    def replace_alert_rules(self, rules: Iterable[AlertRule]) -> None:
        """Swap the whole rule table (used by config reloads)."""
        new_rules = {rule.id: rule for rule in rules}
        with self._lock:
            self._rules = new_rules
        logger.info("Alert rules replaced", extra={"rule_count": len(new_rules)})

    def get_alert_rules(self) -> List[AlertRule]:
        with self._lock:
            return list(self._rules.values())

    def register_action_hook(self, action_type: AlertActionType, hook: ActionHook) -> None:
        self._action_hooks[action_type] = hook
