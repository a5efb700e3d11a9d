"""Tests for the core exception taxonomy."""

import pytest

import ticketguard.core as core
from ticketguard.core.exceptions import (
    ApplicationException,
    PolicyNotFoundException,
    ResourceNotFoundException,
    TicketNotFoundException,
    ViolationNotFoundException,
)


class TestTaxonomy:
    def test_exported_exceptions(self):
        assert set(core.__all__) == {
            "ApplicationException",
            "DomainException",
            "ConfigurationException",
            "ResourceNotFoundException",
            "PolicyNotFoundException",
            "ViolationNotFoundException",
            "TicketNotFoundException",
        }

    @pytest.mark.parametrize("exc, message, details", [
        (PolicyNotFoundException("p-1"), "Security policy with id 'p-1' not found", {"policy_id": "p-1"}),
        (ViolationNotFoundException("v-1"), "Security violation with id 'v-1' not found", {"violation_id": "v-1"}),
        (TicketNotFoundException("T-1"), "Ticket with id 'T-1' not found", {"ticket_id": "T-1"}),
    ])
    def test_not_found_messages(self, exc, message, details):
        assert isinstance(exc, ResourceNotFoundException)
        assert exc.message == str(exc) == message
        assert exc.details == details

    def test_resource_without_id(self):
        exc = ResourceNotFoundException("Gate")
        assert exc.message == "Gate not found"
        assert isinstance(exc, ApplicationException)
        assert exc.details == {}
