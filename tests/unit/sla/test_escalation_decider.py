"""Tests for EscalationDecider: tier selection and history entries."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from ticketguard.config import Priority, TicketStatus
from ticketguard.sla.domain.entities import SLATracking, TicketSnapshot
from ticketguard.sla.domain.services import EscalationDecider
from ticketguard.sla.domain.value_objects import (
    DEFAULT_SLA_CONFIGURATIONS, EscalationDecision
)

CREATED = datetime(2024, 1, 8, 9, 0, tzinfo=timezone.utc)  # Monday


def _make_ticket(priority: Priority = Priority.HIGH, escalation_level: int = 0) -> TicketSnapshot:
    tracking = replace(
        SLATracking.from_configuration(DEFAULT_SLA_CONFIGURATIONS[priority]),
        escalation_level=escalation_level,
    )
    return TicketSnapshot(
        id="T-1",
        priority=priority,
        status=TicketStatus.IN_PROGRESS,
        created_at=CREATED,
        sla_tracking=tracking,
    )


def _after(**delta) -> datetime:
    return CREATED + timedelta(**delta)


@pytest.fixture
def decider(policy_table, calendar) -> EscalationDecider:
    return EscalationDecider(policy_table, calendar)


class TestShouldAutoEscalate:
    def test_below_first_threshold(self, decider):
        decision = decider.should_auto_escalate(_make_ticket(), now=_after(hours=1))
        assert not decision.should_escalate
        assert decision.escalation_level == 0

    def test_first_tier_at_threshold(self, decider):
        decision = decider.should_auto_escalate(_make_ticket(), now=_after(hours=2))
        assert decision.should_escalate
        assert decision.escalation_level == 1
        assert decision.escalate_to == ("senior-tech", "team-lead")
        assert decision.notification_channels == ("email", "sms")
        assert decision.reason == "Auto-escalation triggered: 2 hour threshold exceeded"

    def test_tiers_are_never_skipped(self, decider):
        decision = decider.should_auto_escalate(_make_ticket(), now=_after(hours=5))
        assert decision.escalation_level == 1

    def test_next_tier_after_current_level(self, decider):
        decision = decider.should_auto_escalate(_make_ticket(escalation_level=1), now=_after(hours=5))
        assert decision.escalation_level == 2
        assert decision.escalate_to == ("manager", "director")

    def test_top_tier_reached(self, decider):
        decision = decider.should_auto_escalate(_make_ticket(escalation_level=2), now=_after(hours=50))
        assert not decision.should_escalate
        assert decision.escalation_level == 2

    def test_manual_tier_is_not_auto_escalated(self, decider):
        # MEDIUM level 2 is manual; 32 business hours is past its threshold
        ticket = _make_ticket(Priority.MEDIUM, escalation_level=1)
        assert not decider.should_auto_escalate(ticket, now=_after(days=4)).should_escalate

    def test_low_priority_never_auto_escalates(self, decider):
        ticket = _make_ticket(Priority.LOW)
        assert not decider.should_auto_escalate(ticket, now=_after(days=14)).should_escalate

    def test_business_hours_threshold(self, decider):
        ticket = _make_ticket(Priority.MEDIUM)
        assert not decider.should_auto_escalate(ticket, now=_after(hours=7)).should_escalate
        assert decider.should_auto_escalate(ticket, now=_after(hours=8)).escalation_level == 1


class TestBuildEscalationEntry:
    def test_entry_from_positive_decision(self, decider):
        decision = decider.should_auto_escalate(_make_ticket(), now=_after(hours=2))
        entry = decider.build_escalation_entry(decision, now=_after(hours=2))
        assert entry.level == 1
        assert entry.timestamp == _after(hours=2)
        assert entry.escalated_by == "system"
        assert entry.escalated_to == ("senior-tech", "team-lead")
        assert entry.reason == decision.reason

    def test_negative_decision_rejected(self, decider):
        with pytest.raises(ValueError):
            decider.build_escalation_entry(EscalationDecision(should_escalate=False, escalation_level=0))
