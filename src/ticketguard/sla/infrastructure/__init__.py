"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for SLA monitoring:
- Repositories: In-memory ticket store
- External: YAML config manager with hot reload, sweep scheduler
"""

from ticketguard.sla.infrastructure.external import SLAConfigManager, SLAScheduler
from ticketguard.sla.infrastructure.repositories import InMemoryTicketRepository

__all__ = [
    "InMemoryTicketRepository",
    "SLAConfigManager",
    "SLAScheduler",
]
