"""
Verification Application Layer
===============================

Contains:
- Services: Verification gate manager
- DTOs: Verification insights
- Collaborator interfaces: status source, action executor
"""

from ticketguard.verification.application.dto import GateActivity, VerificationInsights
from ticketguard.verification.application.services import (
    IActionExecutor,
    IVerificationStatusSource,
    VerificationGateManager,
)

__all__ = [
    # DTOs
    "GateActivity",
    "VerificationInsights",
    # Services
    "VerificationGateManager",
    # Collaborator Interfaces
    "IActionExecutor",
    "IVerificationStatusSource",
]
