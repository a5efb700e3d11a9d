"""
Security Domain Layer
=====================

Contains:
- Value Objects: Security policies, requirements and validation rules
- Entities: Violations and access/bypass decisions
"""

from ticketguard.security.domain.entities import (
    AccessDecision,
    BypassDecision,
    SecurityViolation,
)
from ticketguard.security.domain.value_objects import (
    DEFAULT_SECURITY_POLICIES,
    SecurityPolicy,
    SecurityRequirement,
    ValidationRule,
)

__all__ = [
    # Entities
    "AccessDecision",
    "BypassDecision",
    "SecurityViolation",
    # Value Objects
    "DEFAULT_SECURITY_POLICIES",
    "SecurityPolicy",
    "SecurityRequirement",
    "ValidationRule",
]
