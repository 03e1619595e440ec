"""
Derived trace values: gaps, completeness results and facility stops.

These are recomputed from the event log on every call and never persisted.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field

from .events import LifecycleEvent, FacilityType


class Severity(str, Enum):
    """Finding severity, shared by gaps and exceptions"""
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Higher is more severe"""
        return {"critical": 3, "warning": 2, "info": 1}[self.value]


class TraceGap(BaseModel):
    """An interval between two events with nothing documenting custody"""

    start_date: datetime = Field(..., description="Date of the last event before the gap")
    end_date: datetime = Field(..., description="Date of the first event after the gap")
    days: int = Field(..., description="Undocumented calendar days strictly between the two events")
    severity: Severity
    last_event: str = Field(..., description="Type of the event before the gap")
    next_event: str = Field(..., description="Type of the event after the gap")
    last_event_id: Optional[str] = None
    next_event_id: Optional[str] = None
    last_facility: str = "Unknown"
    next_facility: str = "Unknown"


class TraceRating(str, Enum):
    COMPLETE = "complete"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

    @classmethod
    def from_score(cls, score: float) -> "TraceRating":
        if score > 95:
            return cls.COMPLETE
        if score >= 80:
            return cls.GOOD
        if score >= 60:
            return cls.FAIR
        return cls.POOR


class TraceCompleteness(BaseModel):
    """Result of a completeness scoring run"""

    score: int = Field(..., ge=0, le=100)
    rating: TraceRating
    total_days: int
    documented_days: int = 0
    total_events: int
    total_documents: int
    gap_count: int
    total_gap_days: int
    gaps: List[TraceGap] = Field(default_factory=list)

    @classmethod
    def empty(cls, total_events: int = 0, total_documents: int = 0) -> "TraceCompleteness":
        """Conservative result used when the history cannot be scored"""
        return cls(
            score=0,
            rating=TraceRating.POOR,
            total_days=0,
            documented_days=0,
            total_events=total_events,
            total_documents=total_documents,
            gap_count=0,
            total_gap_days=0,
            gaps=[],
        )


class TrustLevel(str, Enum):
    """Documentation trust of a facility stop"""
    VERIFIED = "verified"
    PARTIAL = "partial"
    GAP = "gap"
    UNKNOWN = "unknown"


class FacilityStop(BaseModel):
    """One continuous visit to a single facility"""

    facility: str = Field(..., description="Full facility name as recorded")
    facility_key: str = Field(..., description="Normalized identity used for grouping")
    facility_type: Optional[FacilityType] = None
    display_name: str
    location: Optional[str] = None
    activity: str = Field(..., description="Short activity label, e.g. MFG/OH/SVC")
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    events: List[LifecycleEvent] = Field(default_factory=list)
    evidence_count: int = 0
    document_count: int = 0
    trust: TrustLevel = TrustLevel.UNKNOWN
    preceding_gap: Optional[TraceGap] = None
    is_current: bool = False

    @property
    def event_count(self) -> int:
        return len(self.events)
