"""
SLA Value Objects
==================

Immutable value objects for the SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared between threads.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import TYPE_CHECKING, Dict, Optional, Tuple
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ticketguard.config import AlertSeverity, BreachType, Priority, VALID_PRIORITIES
from ticketguard.shared.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from ticketguard.sla.domain.entities import TicketSnapshot

logger = get_logger(__name__)


# ========== SLA Policy Table ==========

class EscalationTier(BaseModel):
    """Configuration for a single escalation tier."""

    model_config = ConfigDict(frozen=True)

    level: int = Field(ge=1, description="Escalation level (1-based)")
    time_threshold_hours: float = Field(ge=0, description="Elapsed hours before this tier applies")
    escalate_to: Tuple[str, ...] = Field(default=(), description="Role identifiers")
    notification_channels: Tuple[str, ...] = Field(default=(), description="Channels to notify")
    auto_escalate: bool = Field(default=False, description="Escalate without a human decision")


class SLAConfiguration(BaseModel):
    """
    SLA targets for one ticket priority.

    Immutable. Escalation tiers are strictly increasing in level and
    non-decreasing in threshold hours.
    """

    model_config = ConfigDict(frozen=True)

    priority: Priority
    response_time_minutes: int = Field(gt=0)
    resolution_time_hours: float = Field(gt=0)
    escalation_time_hours: float = Field(gt=0)
    business_hours_only: bool = False
    escalation_levels: Tuple[EscalationTier, ...] = ()

    @model_validator(mode="after")
    def validate_escalation_levels(self) -> "SLAConfiguration":
        """Tiers must be ordered by level and threshold."""
        previous: Optional[EscalationTier] = None
        for tier in self.escalation_levels:
            if previous is not None:
                if tier.level <= previous.level:
                    raise ValueError(
                        f"escalation levels must be strictly increasing "
                        f"({previous.level} then {tier.level})"
                    )
                if tier.time_threshold_hours < previous.time_threshold_hours:
                    raise ValueError(
                        f"escalation thresholds must be non-decreasing "
                        f"(level {tier.level} threshold {tier.time_threshold_hours}h)"
                    )
            previous = tier
        return self

    @property
    def response_time_hours(self) -> float:
        return self.response_time_minutes / 60


DEFAULT_SLA_CONFIGURATIONS: Dict[Priority, SLAConfiguration] = {
    Priority.HIGH: SLAConfiguration(
        priority=Priority.HIGH,
        response_time_minutes=15,
        resolution_time_hours=4,
        escalation_time_hours=2,
        business_hours_only=False,
        escalation_levels=(
            EscalationTier(
                level=1,
                time_threshold_hours=2,
                escalate_to=("senior-tech", "team-lead"),
                notification_channels=("email", "sms"),
                auto_escalate=True,
            ),
            EscalationTier(
                level=2,
                time_threshold_hours=4,
                escalate_to=("manager", "director"),
                notification_channels=("email", "sms", "phone"),
                auto_escalate=True,
            ),
        ),
    ),
    Priority.MEDIUM: SLAConfiguration(
        priority=Priority.MEDIUM,
        response_time_minutes=60,
        resolution_time_hours=24,
        escalation_time_hours=8,
        business_hours_only=True,
        escalation_levels=(
            EscalationTier(
                level=1,
                time_threshold_hours=8,
                escalate_to=("senior-tech",),
                notification_channels=("email",),
                auto_escalate=True,
            ),
            EscalationTier(
                level=2,
                time_threshold_hours=24,
                escalate_to=("team-lead",),
                notification_channels=("email", "sms"),
                auto_escalate=False,
            ),
        ),
    ),
    Priority.LOW: SLAConfiguration(
        priority=Priority.LOW,
        response_time_minutes=240,
        resolution_time_hours=72,
        escalation_time_hours=24,
        business_hours_only=True,
        escalation_levels=(
            EscalationTier(
                level=1,
                time_threshold_hours=24,
                escalate_to=("senior-tech",),
                notification_channels=("email",),
                auto_escalate=False,
            ),
        ),
    ),
}


class SLAPolicyTable(BaseModel):
    """
    Static lookup: priority -> SLA configuration.

    Priorities missing from the supplied mapping fall back to the built-in
    defaults, so the table always covers every priority.
    """

    model_config = ConfigDict(frozen=True)

    configurations: Dict[Priority, SLAConfiguration] = Field(
        default_factory=lambda: dict(DEFAULT_SLA_CONFIGURATIONS)
    )

    @field_validator("configurations")
    @classmethod
    def validate_configurations(
        cls, v: Dict[Priority, SLAConfiguration]
    ) -> Dict[Priority, SLAConfiguration]:
        """Fill in defaults and make sure keys match the configured priority."""
        for priority, config in v.items():
            if config.priority != priority:
                raise ValueError(
                    f"configuration for {priority.value} declares priority {config.priority.value}"
                )

        for priority in VALID_PRIORITIES:
            if priority not in v:
                v[priority] = DEFAULT_SLA_CONFIGURATIONS[priority]

        return v

    def get(self, priority: Priority) -> SLAConfiguration:
        """Get the SLA configuration for a ticket priority (MEDIUM if unknown)."""
        config = self.configurations.get(priority)
        if config is None:
            logger.warning(
                "No SLA configuration for priority, using MEDIUM",
                extra={"priority": str(priority)}
            )
            return self.configurations[Priority.MEDIUM]
        return config


# ========== Business Calendar ==========

@dataclass(frozen=True)
class ElapsedTime:
    """Elapsed wall-clock and SLA-relevant hours since ticket creation."""

    total_hours: float
    business_hours: float


def as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class BusinessCalendar:
    """
    Pure business-hours arithmetic over a fixed weekly template.

    Default template is 09:00-17:00, Monday to Friday, evaluated in the
    configured timezone.
    """

    def __init__(
        self,
        timezone_name: str = "UTC",
        start_hour: int = 9,
        end_hour: int = 17,
        business_days: Tuple[int, ...] = (0, 1, 2, 3, 4),
    ):
        if not 0 <= start_hour < end_hour <= 24:
            raise ValueError("business day must satisfy 0 <= start_hour < end_hour <= 24")
        self._tz: tzinfo = timezone.utc if timezone_name == "UTC" else ZoneInfo(timezone_name)
        self.start_hour = start_hour
        self.end_hour = end_hour
        self.business_days = frozenset(business_days)

    def is_business_hour(self, instant: datetime) -> bool:
        local = as_utc(instant).astimezone(self._tz)
        return (
            local.weekday() in self.business_days
            and self.start_hour <= local.hour < self.end_hour
        )

    def business_hours_between(self, start: datetime, end: datetime) -> int:
        """
        Count whole business hours in [start, end).

        Walks hour by hour from ``start``; an hour counts when it fits
        entirely before ``end`` and starts inside the business template.
        Returns 0 when ``start >= end``.
        """
        start, end = as_utc(start), as_utc(end)
        one_hour = timedelta(hours=1)

        hours = 0
        current = start
        while current + one_hour <= end:
            if self.is_business_hour(current):
                hours += 1
            current += one_hour
        return hours

    def elapsed(
        self,
        ticket: "TicketSnapshot",
        business_hours_only: bool = False,
        now: Optional[datetime] = None,
    ) -> ElapsedTime:
        """
        Elapsed time since ticket creation.

        ``business_hours`` equals ``total_hours`` unless the ticket's SLA is
        counted in business hours only. Creation times in the future clamp
        to zero.
        """
        now = as_utc(now or datetime.now(timezone.utc))
        created_at = as_utc(ticket.created_at)

        total_hours = max(0.0, (now - created_at).total_seconds() / 3600)
        if not business_hours_only:
            return ElapsedTime(total_hours=total_hours, business_hours=total_hours)

        business_hours = float(self.business_hours_between(created_at, now))
        return ElapsedTime(total_hours=total_hours, business_hours=business_hours)


# ========== Evaluation Results ==========

@dataclass(frozen=True)
class BreachCheck:
    """Outcome of a breach check. At most one breach type is reported."""

    is_breached: bool
    breach_type: Optional[BreachType]
    time_overdue: float
    severity: AlertSeverity

    @classmethod
    def not_breached(cls) -> "BreachCheck":
        return cls(
            is_breached=False,
            breach_type=None,
            time_overdue=0.0,
            severity=AlertSeverity.LOW,
        )


@dataclass(frozen=True)
class EscalationDecision:
    """Whether a ticket should move up to the next escalation tier."""

    should_escalate: bool
    escalation_level: int
    escalate_to: Tuple[str, ...] = ()
    reason: str = ""
    notification_channels: Tuple[str, ...] = ()
