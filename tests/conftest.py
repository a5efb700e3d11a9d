"""Shared fixtures for the ticketguard test suite."""

from datetime import timedelta
from typing import List, Sequence

import pytest

from ticketguard.alerts.application.services import AlertService, INotificationChannel
from ticketguard.security.application.services import SecurityPolicyEngine
from ticketguard.sla.application.services import SLAService, StaticSLAConfigProvider
from ticketguard.sla.domain.entities import SLAAlert
from ticketguard.sla.domain.value_objects import BusinessCalendar, SLAPolicyTable
from ticketguard.verification.application.services import (
    IActionExecutor, VerificationGateManager
)
from ticketguard.verification.domain.entities import ActionOutcome, TicketAction
from ticketguard.verification.infrastructure.adapters import InMemoryVerificationStatusSource


# ─── Test doubles ─────────────────────────────────────────────────────────────


class RecordingChannel(INotificationChannel):
    """Notification channel that records calls; set ``fail`` to make it raise."""

    def __init__(self):
        self.fail = False
        self.calls: List[tuple] = []

    def send(self, alert: SLAAlert, channels: Sequence[str], targets: Sequence[str]) -> None:
        if self.fail:
            raise ConnectionError("smtp unavailable")
        self.calls.append((alert.id, list(channels), list(targets)))


class RecordingExecutor(IActionExecutor):
    """Action executor that records performed actions and rejects ``failing_types``."""

    def __init__(self):
        self.failing_types = set()
        self.raising = False
        self.performed: List[TicketAction] = []

    def perform(self, action: TicketAction) -> ActionOutcome:
        if self.raising:
            raise RuntimeError("ticket system unavailable")
        if action.type in self.failing_types:
            return ActionOutcome(success=False, reason=f"{action.type.value} rejected")
        self.performed.append(action)
        return ActionOutcome(success=True, reason="done")


class FakeClock:
    """Monotonic clock under test control."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


# ─── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def calendar() -> BusinessCalendar:
    return BusinessCalendar()


@pytest.fixture
def policy_table() -> SLAPolicyTable:
    return SLAPolicyTable()


@pytest.fixture
def sla_service(policy_table, calendar) -> SLAService:
    return SLAService(StaticSLAConfigProvider(policy_table), calendar=calendar)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def policy_engine(clock) -> SecurityPolicyEngine:
    return SecurityPolicyEngine(cache_ttl_seconds=60, clock=clock)


@pytest.fixture
def status_source() -> InMemoryVerificationStatusSource:
    return InMemoryVerificationStatusSource()


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def gate_manager(policy_engine, status_source, executor) -> VerificationGateManager:
    return VerificationGateManager(
        policy_engine=policy_engine,
        status_source=status_source,
        action_executor=executor,
        gate_retention=timedelta(hours=24),
    )


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def alert_service(channel) -> AlertService:
    return AlertService(notification_channel=channel)
