"""
SLA Application DTOs
=====================

Data Transfer Objects returned by the SLA application services.

These Pydantic models are what the surrounding HTTP/API layer serialises;
the engine itself never renders them.
"""

from datetime import date, datetime
from typing import Dict, List

from pydantic import BaseModel, Field

from ticketguard.config import Priority


class SLAMetrics(BaseModel):
    """Aggregate SLA figures over a set of tickets."""
    total_tickets: int = 0
    within_sla: int = 0
    breached_sla: int = 0
    average_response_time: float = Field(default=0.0, description="Minutes")
    average_resolution_time: float = Field(default=0.0, description="Hours")
    escalation_rate: float = Field(default=0.0, description="Percentage of escalated tickets")


class TrendPoint(BaseModel):
    """One day of a performance trend."""
    day: date
    ticket_count: int
    average_response_time: float = Field(..., description="Minutes, 0 when no responses")
    average_resolution_time: float = Field(..., description="Hours, 0 when no resolutions")


class CategoryStat(BaseModel):
    """Ticket volume and resolution time for one category."""
    category: str
    count: int
    average_resolution_time: float


class ReportPeriod(BaseModel):
    start: datetime
    end: datetime


class PerformanceReport(BaseModel):
    """SLA performance over a reporting period."""
    period: ReportPeriod
    overview: SLAMetrics
    by_priority: Dict[Priority, SLAMetrics]
    trends: List[TrendPoint] = Field(default_factory=list)
    top_issues: List[CategoryStat] = Field(default_factory=list)


class EvaluationSummary(BaseModel):
    """Result of one SLA evaluation sweep."""
    tickets_evaluated: int = 0
    tracking_updates: int = 0
    escalations: int = 0
    alerts_generated: int = 0
    errors: List[str] = Field(default_factory=list)
