"""
Security Application DTOs
==========================
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ticketguard.config import PolicySeverity, ViolationType


class ViolationSummary(BaseModel):
    """Serialisable view of a security violation."""
    id: str
    ticket_id: str
    user_id: str
    policy_id: str
    violation_type: ViolationType
    description: str
    severity: PolicySeverity
    timestamp: datetime
    resolved: bool
    resolution_notes: Optional[str] = None


class SecurityInsights(BaseModel):
    """Violation overview and compliance score for a user (or everyone)."""
    total_violations: int = 0
    recent_violations: List[ViolationSummary] = Field(default_factory=list)
    compliance_score: int = Field(default=100, ge=0, le=100, description="Percent")
    risk_areas: List[ViolationType] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
