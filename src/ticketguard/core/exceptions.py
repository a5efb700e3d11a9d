"""
Core Exceptions
================

Custom exceptions for the engine following clean architecture principles.

Only truly exceptional conditions are raised. Routine outcomes such as a
missing verification gate or a denied bypass are returned as typed results
by the services instead.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain invariant violations."""


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class PolicyNotFoundException(ResourceNotFoundException):
    """Raised when a bypass references an unknown security policy."""

    def __init__(self, policy_id: str):
        super().__init__("Security policy", policy_id, {"policy_id": policy_id})


class ViolationNotFoundException(ResourceNotFoundException):
    """Raised when resolving a security violation that was never recorded."""

    def __init__(self, violation_id: str):
        super().__init__("Security violation", violation_id, {"violation_id": violation_id})


class TicketNotFoundException(ResourceNotFoundException):
    """Raised by ticket stores for unknown ticket ids."""

    def __init__(self, ticket_id: str):
        super().__init__("Ticket", ticket_id, {"ticket_id": ticket_id})
