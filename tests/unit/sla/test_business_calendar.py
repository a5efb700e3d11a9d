"""Tests for BusinessCalendar: business-hour counting and elapsed time."""

from datetime import datetime, timedelta, timezone

import pytest

from ticketguard.config import Priority, TicketStatus
from ticketguard.sla.domain.entities import SLATracking, TicketSnapshot
from ticketguard.sla.domain.value_objects import BusinessCalendar, DEFAULT_SLA_CONFIGURATIONS

MONDAY = datetime(2024, 1, 8, tzinfo=timezone.utc)
FRIDAY = datetime(2024, 1, 12, tzinfo=timezone.utc)
SATURDAY = datetime(2024, 1, 13, tzinfo=timezone.utc)


def _make_ticket(created_at: datetime, priority: Priority = Priority.MEDIUM) -> TicketSnapshot:
    return TicketSnapshot(
        id="T-1",
        priority=priority,
        status=TicketStatus.OPEN,
        created_at=created_at,
        sla_tracking=SLATracking.from_configuration(DEFAULT_SLA_CONFIGURATIONS[priority]),
    )


class TestBusinessHoursBetween:
    def test_full_business_day(self, calendar):
        assert calendar.business_hours_between(MONDAY.replace(hour=9), MONDAY.replace(hour=17)) == 8

    def test_walk_starts_at_start_instant(self, calendar):
        # 08:30 is outside, 09:30 is inside, 10:30 does not fit before the end
        start = MONDAY.replace(hour=8, minute=30)
        end = MONDAY.replace(hour=10, minute=30)
        assert calendar.business_hours_between(start, end) == 1

    def test_weekend_is_skipped(self, calendar):
        start = FRIDAY.replace(hour=16)
        end = MONDAY.replace(hour=10) + timedelta(days=7)
        assert calendar.business_hours_between(start, end) == 2

    def test_saturday_has_no_business_hours(self, calendar):
        assert calendar.business_hours_between(SATURDAY, SATURDAY + timedelta(days=1)) == 0

    def test_partial_hour_does_not_count(self, calendar):
        start = MONDAY.replace(hour=9)
        assert calendar.business_hours_between(start, start + timedelta(minutes=59)) == 0

    @pytest.mark.parametrize("offset", [timedelta(0), timedelta(hours=-3)])
    def test_empty_or_reversed_interval(self, calendar, offset):
        start = MONDAY.replace(hour=10)
        assert calendar.business_hours_between(start, start + offset) == 0

    def test_naive_datetimes_are_utc(self, calendar):
        naive = calendar.business_hours_between(datetime(2024, 1, 8, 9), datetime(2024, 1, 8, 17))
        assert naive == 8

    def test_custom_template(self):
        calendar = BusinessCalendar(start_hour=8, end_hour=18)
        assert calendar.business_hours_between(MONDAY, MONDAY + timedelta(days=1)) == 10

    def test_custom_business_days(self):
        calendar = BusinessCalendar(business_days=(5,))
        assert calendar.business_hours_between(SATURDAY, SATURDAY + timedelta(days=1)) == 8

    @pytest.mark.parametrize("start_hour,end_hour", [(17, 9), (9, 9), (-1, 5), (9, 25)])
    def test_invalid_template_rejected(self, start_hour, end_hour):
        with pytest.raises(ValueError):
            BusinessCalendar(start_hour=start_hour, end_hour=end_hour)


class TestElapsed:
    def test_wall_clock_hours(self, calendar):
        ticket = _make_ticket(MONDAY.replace(hour=9))
        elapsed = calendar.elapsed(ticket, business_hours_only=False, now=MONDAY.replace(hour=9, minute=20))
        assert elapsed.total_hours == pytest.approx(1 / 3)
        assert elapsed.business_hours == elapsed.total_hours

    def test_business_hours_only(self, calendar):
        ticket = _make_ticket(FRIDAY.replace(hour=16, minute=30))
        now = FRIDAY.replace(hour=8) + timedelta(days=3)  # Monday 08:00
        elapsed = calendar.elapsed(ticket, business_hours_only=True, now=now)
        assert elapsed.total_hours == pytest.approx(63.5)
        assert elapsed.business_hours == 1

    def test_future_creation_clamps_to_zero(self, calendar):
        ticket = _make_ticket(MONDAY.replace(hour=12))
        elapsed = calendar.elapsed(ticket, business_hours_only=True, now=MONDAY.replace(hour=10))
        assert elapsed.total_hours == 0
        assert elapsed.business_hours == 0

    def test_business_hours_never_exceed_total(self, calendar):
        starts = [
            MONDAY.replace(hour=9, minute=30),
            MONDAY.replace(hour=16, minute=45),
            FRIDAY.replace(hour=15),
            SATURDAY.replace(hour=11),
        ]
        spans = [timedelta(minutes=m) for m in (0, 15, 45, 61, 200, 900, 4000, 10000)]
        for start in starts:
            ticket = _make_ticket(start)
            for span in spans:
                elapsed = calendar.elapsed(ticket, business_hours_only=True, now=start + span)
                assert 0 <= elapsed.business_hours <= elapsed.total_hours
