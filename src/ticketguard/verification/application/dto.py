"""
Verification Application DTOs
==============================
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ticketguard.config import ActionType, GateStatus


class GateActivity(BaseModel):
    """One gate in a user's recent activity."""
    ticket_id: str
    status: GateStatus
    created_at: datetime
    completed_at: Optional[datetime] = None
    actions: List[ActionType] = Field(default_factory=list)


class VerificationInsights(BaseModel):
    """Gate statistics for one user over the gates currently retained."""
    total_gates_created: int = 0
    gates_blocked: int = 0
    gates_bypassed: int = 0
    average_resolution_time: float = Field(
        default=0.0, description="Minutes from gate creation to completion or bypass"
    )
    recent_activity: List[GateActivity] = Field(default_factory=list)
