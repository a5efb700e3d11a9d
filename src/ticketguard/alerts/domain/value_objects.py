"""
Alert Rule Value Objects
=========================

Immutable alert rule definitions and the logic that matches them against
SLA alerts.

A rule matches an alert when ANY of its conditions matches.
"""

from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from ticketguard.config import (
    AlertActionType,
    AlertConditionType,
    AlertSeverity,
    AlertType,
    ConditionOperator,
)
from ticketguard.sla.domain.entities import SLAAlert

# Alert types each condition type reacts to
_CONDITION_ALERT_TYPES = {
    AlertConditionType.SLA_BREACH: (AlertType.SLA_BREACH,),
    AlertConditionType.RESPONSE_OVERDUE: (AlertType.RESPONSE_DUE, AlertType.SLA_BREACH),
    AlertConditionType.RESOLUTION_OVERDUE: (AlertType.RESOLUTION_DUE, AlertType.SLA_BREACH),
    AlertConditionType.ESCALATION_REQUIRED: (AlertType.ESCALATION_REQUIRED,),
}


class AlertCondition(BaseModel):
    """
    One alert rule condition.

    The condition type selects the alert types it applies to. When a
    ``value`` is given, the operator is evaluated against the alert
    attribute named by ``field`` (``severity`` for SLA_BREACH conditions
    without an explicit field).
    """

    model_config = ConfigDict(frozen=True)

    type: AlertConditionType
    operator: ConditionOperator = ConditionOperator.EQUALS
    value: Optional[Union[float, str]] = None
    field: Optional[str] = None

    def matches(self, alert: SLAAlert) -> bool:
        if alert.type not in _CONDITION_ALERT_TYPES[self.type]:
            return False

        field_name = self.field
        if field_name is None and self.type == AlertConditionType.SLA_BREACH:
            field_name = "severity"
        if self.value is None or field_name is None:
            return True

        return _evaluate(getattr(alert, field_name, None), self.operator, self.value)


def _evaluate(actual: Any, operator: ConditionOperator, expected: Any) -> bool:
    if isinstance(actual, AlertSeverity):
        try:
            expected = AlertSeverity(str(expected).upper())
        except ValueError:
            return False
    elif isinstance(actual, Enum):
        actual = actual.value

    if operator == ConditionOperator.EQUALS:
        return actual == expected
    if operator == ConditionOperator.CONTAINS:
        if isinstance(actual, (list, tuple, set, frozenset)):
            return expected in actual
        return str(expected).lower() in str(actual).lower()

    try:
        if operator == ConditionOperator.GREATER_THAN:
            return actual > expected
        if operator == ConditionOperator.LESS_THAN:
            return actual < expected
    except TypeError:
        return False
    return False


class AlertAction(BaseModel):
    """
    Action executed when a rule fires.

    NOTIFICATION config keys: ``channels``, ``recipients``, ``template``.
    Actions with ``delay_seconds`` are deferred until a due-actions sweep.
    """

    model_config = ConfigDict(frozen=True)

    type: AlertActionType
    config: Dict[str, Any] = Field(default_factory=dict)
    delay_seconds: float = Field(default=0, ge=0)


class AlertRule(BaseModel):
    """Configurable alert rule."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    enabled: bool = True
    conditions: Tuple[AlertCondition, ...] = ()
    actions: Tuple[AlertAction, ...] = ()
    cooldown_minutes: float = Field(default=0, ge=0)
    priority: AlertSeverity = AlertSeverity.MEDIUM

    def matches(self, alert: SLAAlert) -> bool:
        return any(condition.matches(alert) for condition in self.conditions)


DEFAULT_ALERT_RULES: Tuple[AlertRule, ...] = (
    AlertRule(
        id="high-priority-sla-breach",
        name="High Priority SLA Breach",
        description="Alert when tickets critically breach SLA",
        conditions=(
            AlertCondition(
                type=AlertConditionType.SLA_BREACH,
                operator=ConditionOperator.EQUALS,
                value=AlertSeverity.CRITICAL.value,
                field="severity",
            ),
        ),
        actions=(
            AlertAction(
                type=AlertActionType.NOTIFICATION,
                config={
                    "channels": ["email", "sms"],
                    "recipients": ["team-lead", "manager"],
                    "template": "sla_breach_critical",
                },
            ),
            AlertAction(
                type=AlertActionType.AUTO_ESCALATE,
                config={
                    "escalate_to": "senior-tech",
                    "reason": "High priority SLA breach - auto-escalating",
                },
                delay_seconds=300,
            ),
        ),
        cooldown_minutes=30,
        priority=AlertSeverity.CRITICAL,
    ),
    AlertRule(
        id="response-time-warning",
        name="Response Time Warning",
        description="Warning when response time is approaching SLA",
        conditions=(AlertCondition(type=AlertConditionType.RESPONSE_OVERDUE),),
        actions=(
            AlertAction(
                type=AlertActionType.NOTIFICATION,
                config={
                    "channels": ["email"],
                    "recipients": ["assigned-tech"],
                    "template": "response_warning",
                },
            ),
        ),
        cooldown_minutes=15,
        priority=AlertSeverity.MEDIUM,
    ),
)
