"""
SLA Application Layer
======================

Application layer for the SLA module.

Contains:
- Services: Orchestrate domain services and coordinate with the ticket store
- DTOs: Metrics, reports and sweep summaries

This layer depends on the domain layer and collaborator interfaces,
but not on concrete infrastructure implementations.
"""

from ticketguard.sla.application.dto import (
    CategoryStat,
    EvaluationSummary,
    PerformanceReport,
    ReportPeriod,
    SLAMetrics,
    TrendPoint,
)
from ticketguard.sla.application.services import (
    IAlertSink,
    ISLAConfigProvider,
    ITicketRepository,
    SLAEvaluationService,
    SLAService,
    StaticSLAConfigProvider,
)

__all__ = [
    # DTOs
    "CategoryStat",
    "EvaluationSummary",
    "PerformanceReport",
    "ReportPeriod",
    "SLAMetrics",
    "TrendPoint",
    # Services
    "SLAService",
    "SLAEvaluationService",
    "StaticSLAConfigProvider",
    # Collaborator Interfaces
    "IAlertSink",
    "ISLAConfigProvider",
    "ITicketRepository",
]
