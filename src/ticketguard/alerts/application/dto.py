"""
Alert Application DTOs
=======================
"""

from typing import Dict

from pydantic import BaseModel, Field


class AlertStatistics(BaseModel):
    """Alert counts over a time window."""
    total_alerts: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_severity: Dict[str, int] = Field(default_factory=dict)
    acknowledged_count: int = 0
    average_acknowledgment_time: float = Field(default=0.0, description="Minutes")
