"""
Security Application Layer
===========================

Contains:
- Services: Security policy engine
- DTOs: Security insights
"""

from ticketguard.security.application.dto import SecurityInsights, ViolationSummary
from ticketguard.security.application.services import SecurityPolicyEngine

__all__ = [
    # DTOs
    "SecurityInsights",
    "ViolationSummary",
    # Services
    "SecurityPolicyEngine",
]
