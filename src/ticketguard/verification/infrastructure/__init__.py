"""
Verification Infrastructure Layer
==================================

In-memory verification status source and logging action executor.
"""

from ticketguard.verification.infrastructure.adapters import (
    InMemoryVerificationStatusSource,
    LoggingActionExecutor,
)

__all__ = [
    "InMemoryVerificationStatusSource",
    "LoggingActionExecutor",
]
