"""
Alert Domain Layer
==================

Contains:
- Value Objects: Alert rules, conditions and actions
- Entities: Rule firing records and deferred actions
"""

from ticketguard.alerts.domain.entities import AlertInstance, DeferredAction
from ticketguard.alerts.domain.value_objects import (
    AlertAction,
    AlertCondition,
    AlertRule,
    DEFAULT_ALERT_RULES,
)

__all__ = [
    # Entities
    "AlertInstance",
    "DeferredAction",
    # Value Objects
    "AlertAction",
    "AlertCondition",
    "AlertRule",
    "DEFAULT_ALERT_RULES",
]
