"""Tests for BreachDetector: breach checks and SLA tracking updates."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from ticketguard.config import AlertSeverity, BreachType, Priority, TicketStatus
from ticketguard.sla.domain.entities import SLATracking, TicketSnapshot
from ticketguard.sla.domain.services import BreachDetector
from ticketguard.sla.domain.value_objects import DEFAULT_SLA_CONFIGURATIONS

CREATED = datetime(2024, 1, 8, 9, 0, tzinfo=timezone.utc)  # Monday


def _make_ticket(
    priority: Priority = Priority.HIGH,
    status: TicketStatus = TicketStatus.OPEN,
    assigned_to=None,
    **tracking_changes,
) -> TicketSnapshot:
    tracking = replace(
        SLATracking.from_configuration(DEFAULT_SLA_CONFIGURATIONS[priority]), **tracking_changes
    )
    return TicketSnapshot(
        id="T-1",
        priority=priority,
        status=status,
        created_at=CREATED,
        sla_tracking=tracking,
        assigned_to=assigned_to,
    )


def _after(**delta) -> datetime:
    return CREATED + timedelta(**delta)


@pytest.fixture
def detector(policy_table, calendar) -> BreachDetector:
    return BreachDetector(policy_table, calendar)


class TestCheckBreach:
    def test_high_priority_response_breach(self, detector):
        breach = detector.check_breach(_make_ticket(), now=_after(minutes=20))
        assert breach.is_breached
        assert breach.breach_type == BreachType.RESPONSE
        assert breach.time_overdue == pytest.approx(5 / 60)
        assert breach.severity == AlertSeverity.HIGH

    def test_response_breach_turns_critical_after_double_window(self, detector):
        breach = detector.check_breach(_make_ticket(), now=_after(minutes=40))
        assert breach.severity == AlertSeverity.CRITICAL

    def test_within_response_window(self, detector):
        breach = detector.check_breach(_make_ticket(), now=_after(minutes=10))
        assert not breach.is_breached
        assert breach.breach_type is None
        assert breach.time_overdue == 0
        assert breach.severity == AlertSeverity.LOW

    def test_exact_deadline_is_not_a_breach(self, detector):
        assert not detector.check_breach(_make_ticket(), now=_after(minutes=15)).is_breached

    def test_responded_ticket_skips_response_clock(self, detector):
        ticket = _make_ticket(actual_response_time=5.0)
        assert not detector.check_breach(ticket, now=_after(minutes=30)).is_breached

    def test_resolution_breach(self, detector):
        ticket = _make_ticket(status=TicketStatus.IN_PROGRESS)
        breach = detector.check_breach(ticket, now=_after(hours=5))
        assert breach.breach_type == BreachType.RESOLUTION
        assert breach.time_overdue == pytest.approx(1)
        assert breach.severity == AlertSeverity.HIGH

    def test_resolution_breach_critical_past_half_window(self, detector):
        ticket = _make_ticket(status=TicketStatus.IN_PROGRESS)
        assert detector.check_breach(ticket, now=_after(hours=7)).severity == AlertSeverity.CRITICAL

    def test_escalation_breach(self, detector):
        ticket = _make_ticket(status=TicketStatus.IN_PROGRESS)
        breach = detector.check_breach(ticket, now=_after(hours=3))
        assert breach.breach_type == BreachType.ESCALATION
        assert breach.severity == AlertSeverity.MEDIUM
        assert breach.time_overdue == pytest.approx(1)

    def test_escalated_ticket_has_no_escalation_breach(self, detector):
        ticket = _make_ticket(status=TicketStatus.ESCALATED)
        assert not detector.check_breach(ticket, now=_after(hours=3)).is_breached

    def test_first_breached_clock_wins(self, detector):
        # OPEN ticket past every deadline reports the response breach
        breach = detector.check_breach(_make_ticket(), now=_after(hours=10))
        assert breach.breach_type == BreachType.RESPONSE

    def test_business_hours_priority_ignores_nights(self, detector):
        ticket = replace(
            _make_ticket(Priority.MEDIUM), created_at=datetime(2024, 1, 12, 16, 30, tzinfo=timezone.utc)
        )
        monday_morning = datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)
        assert not detector.check_breach(ticket, now=monday_morning).is_breached

    def test_business_hours_breach(self, detector):
        ticket = _make_ticket(Priority.MEDIUM)
        assert not detector.check_breach(ticket, now=_after(minutes=90)).is_breached
        breach = detector.check_breach(ticket, now=_after(hours=2))
        assert breach.breach_type == BreachType.RESPONSE
        assert breach.severity == AlertSeverity.HIGH

    @pytest.mark.parametrize("priority", list(Priority))
    def test_breach_is_monotonic_in_time(self, detector, priority):
        ticket = _make_ticket(priority)
        breached = False
        for minutes in range(0, 60 * 24 * 5, 20):
            result = detector.check_breach(ticket, now=_after(minutes=minutes)).is_breached
            assert result or not breached, f"breach cleared at {minutes} minutes"
            breached = result


class TestUpdateSLATracking:
    def test_response_recorded_when_work_starts(self, detector):
        update = detector.update_sla_tracking(
            _make_ticket(), TicketStatus.IN_PROGRESS, now=_after(minutes=10)
        )
        assert update.actual_response_time == pytest.approx(10)
        assert update.actual_resolution_time is None
        assert update.sla_breached is None

    def test_response_recorded_when_assigned(self, detector):
        ticket = _make_ticket(assigned_to="tech-1")
        update = detector.update_sla_tracking(ticket, TicketStatus.OPEN, now=_after(minutes=5))
        assert update.actual_response_time == pytest.approx(5)

    def test_response_not_overwritten(self, detector):
        ticket = _make_ticket(actual_response_time=3.0)
        update = detector.update_sla_tracking(ticket, TicketStatus.IN_PROGRESS, now=_after(minutes=10))
        assert update.actual_response_time is None

    def test_resolution_recorded_in_wall_clock_hours(self, detector):
        ticket = _make_ticket(status=TicketStatus.IN_PROGRESS, actual_response_time=5.0)
        update = detector.update_sla_tracking(ticket, TicketStatus.RESOLVED, now=_after(hours=3))
        assert update.actual_resolution_time == pytest.approx(3)
        assert update.sla_breached is True
        assert update.breach_reason == "ESCALATION SLA breached by 1.0 hours"

    def test_breach_is_checked_against_new_status(self, detector):
        update = detector.update_sla_tracking(_make_ticket(), TicketStatus.OPEN, now=_after(minutes=20))
        assert update.sla_breached is True
        assert update.breach_reason == "RESPONSE SLA breached by 0.1 hours"

    def test_breach_flag_set_only_once(self, detector):
        ticket = _make_ticket(sla_breached=True, breach_reason="RESPONSE SLA breached by 0.1 hours")
        update = detector.update_sla_tracking(ticket, TicketStatus.OPEN, now=_after(hours=6))
        assert update.sla_breached is None
        assert update.breach_reason is None
        assert update.is_empty

    def test_no_changes_is_empty(self, detector):
        update = detector.update_sla_tracking(_make_ticket(), TicketStatus.OPEN, now=_after(minutes=1))
        assert update.is_empty
        assert update.to_dict() == {}
