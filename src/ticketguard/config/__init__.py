"""
Configuration Module
====================

Engine settings and domain constants.

Settings are loaded from environment variables (or a ``.env`` file) with
pydantic-settings. Constants are string enums shared by every bounded context.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="ticketguard", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Business Calendar ==========
    business_timezone: str = Field(
        default="UTC",
        description="IANA timezone the business-hours template is evaluated in"
    )
    business_day_start_hour: int = Field(default=9, ge=0, le=23)
    business_day_end_hour: int = Field(default=17, ge=1, le=24)

    # ========== SLA Configuration ==========
    sla_config_path: Optional[Path] = Field(
        default=None,
        description="Optional YAML file overriding SLA policies and alert rules"
    )
    response_due_lead_minutes: int = Field(
        default=15,
        description="Lead window before the response deadline for RESPONSE_DUE alerts",
        ge=0
    )
    resolution_due_lead_hours: float = Field(
        default=2.0,
        description="Lead window before the resolution deadline for RESOLUTION_DUE alerts",
        ge=0
    )

    # ========== Security ==========
    decision_cache_ttl_seconds: float = Field(
        default=60.0,
        description="Lifetime of cached access decisions",
        ge=0
    )
    primary_security_policy_id: str = Field(
        default="customer-identity-verification",
        description="Policy consulted when a verification gate bypass is requested"
    )
    gate_retention_hours: float = Field(
        default=24.0,
        description="How long closed verification gates are kept before a sweep drops them",
        ge=0
    )

    # ========== Alerts ==========
    alert_history_retention_days: float = Field(
        default=30.0,
        description="How long acknowledged alerts are kept for statistics",
        ge=0
    )

    # ========== Sweeps ==========
    sweep_interval_seconds: int = Field(
        default=60,
        description="Seconds between scheduled sweeps (0 disables the scheduler)",
        ge=0
    )

    model_config = SettingsConfigDict(
        env_prefix="TICKETGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("sweep_interval_seconds")
    @classmethod
    def validate_sweep_interval(cls, v: int) -> int:
        """Sweeps either run at least every 10 seconds apart or are disabled."""
        if 0 < v < 10:
            raise ValueError("sweep_interval_seconds must be 0 or >= 10")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# ========== Constants ==========

class Priority(str, Enum):
    """Ticket priority levels."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    ESCALATED = "ESCALATED"
    CLOSED = "CLOSED"


class BreachType(str, Enum):
    """SLA clocks that can be breached."""
    RESPONSE = "RESPONSE"
    RESOLUTION = "RESOLUTION"
    ESCALATION = "ESCALATION"


class AlertType(str, Enum):
    """SLA alert types."""
    RESPONSE_DUE = "RESPONSE_DUE"
    RESOLUTION_DUE = "RESOLUTION_DUE"
    SLA_BREACH = "SLA_BREACH"
    ESCALATION_REQUIRED = "ESCALATION_REQUIRED"


class _RankedEnum(str, Enum):
    """String enum with a total order given by declaration order."""

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    def _compare(self, other, op):
        if type(other) is not type(self):
            return NotImplemented
        return op(self.rank, other.rank)

    def __lt__(self, other):
        return self._compare(other, lambda a, b: a < b)

    def __le__(self, other):
        return self._compare(other, lambda a, b: a <= b)

    def __gt__(self, other):
        return self._compare(other, lambda a, b: a > b)

    def __ge__(self, other):
        return self._compare(other, lambda a, b: a >= b)


class AlertSeverity(_RankedEnum):
    """Alert severity, ordered LOW < MEDIUM < HIGH < CRITICAL."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class PolicySeverity(_RankedEnum):
    """Security policy severity, ordered low < medium < high < critical."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ViolationType(str, Enum):
    """Kinds of security violation recorded in the audit log."""
    BYPASS_ATTEMPT = "bypass_attempt"
    INCOMPLETE_VERIFICATION = "incomplete_verification"
    POLICY_VIOLATION = "policy_violation"
    UNAUTHORIZED_ACTION = "unauthorized_action"


class GateStatus(str, Enum):
    """Verification gate states."""
    OPEN = "open"
    BLOCKED = "blocked"
    BYPASSED = "bypassed"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (GateStatus.BYPASSED, GateStatus.COMPLETED)


class ActionType(str, Enum):
    """Ticket actions that can be requested through a verification gate."""
    RESOLVE = "resolve"
    ESCALATE = "escalate"
    CLOSE = "close"
    MODIFY = "modify"
    ACCESS = "access"


class BypassType(str, Enum):
    """Bypass tokens known to the security policies."""
    EMERGENCY_OVERRIDE = "emergency_override"
    MANAGER_APPROVAL = "manager_approval"
    CALLBACK_VERIFICATION = "callback_verification"
    HR_APPROVAL = "hr_approval"


class AlertConditionType(str, Enum):
    """Alert rule condition types."""
    SLA_BREACH = "SLA_BREACH"
    RESPONSE_OVERDUE = "RESPONSE_OVERDUE"
    RESOLUTION_OVERDUE = "RESOLUTION_OVERDUE"
    ESCALATION_REQUIRED = "ESCALATION_REQUIRED"


class ConditionOperator(str, Enum):
    """Comparison operators for alert rule conditions."""
    EQUALS = "equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"


class AlertActionType(str, Enum):
    """Actions an alert rule can trigger."""
    NOTIFICATION = "NOTIFICATION"
    AUTO_ASSIGN = "AUTO_ASSIGN"
    AUTO_ESCALATE = "AUTO_ESCALATE"
    CREATE_TICKET = "CREATE_TICKET"


# ========== Lists for validation ==========

VALID_PRIORITIES = [Priority.HIGH, Priority.MEDIUM, Priority.LOW]
ACTIVE_STATUSES = [TicketStatus.OPEN, TicketStatus.IN_PROGRESS, TicketStatus.ESCALATED]
GATED_ACTIONS = frozenset(ActionType)

# Verification fields tracked per ticket
VERIFICATION_FIELDS = ("customerName", "username", "assetTag", "department", "contactInfo")

# Verification fields consulted when deciding whether an action needs a gate
CRITICAL_VERIFICATION_FIELDS = ("customerName", "username")
