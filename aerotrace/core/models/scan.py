"""
Scan result models for single-component and fleet-wide scans.
"""
from typing import List, Dict
from pydantic import BaseModel, Field

from .exceptions import IntegrityException
from .trace import Severity


def count_by_severity(exceptions: List[IntegrityException]) -> Dict[str, int]:
    counts = {s.value: 0 for s in Severity}
    for ex in exceptions:
        counts[ex.severity.value] += 1
    return counts


class ScanResult(BaseModel):
    """All findings of one component after a scan"""

    component_id: str
    exceptions: List[IntegrityException] = Field(default_factory=list)
    newly_detected: int = 0

    @property
    def summary(self) -> Dict[str, int]:
        counts = count_by_severity(self.exceptions)
        counts["total"] = len(self.exceptions)
        counts["newly_detected"] = self.newly_detected
        return counts


class ScanError(BaseModel):
    """A component that could not be scanned"""

    component_id: str
    error_type: str
    message: str


class FleetScanSummary(BaseModel):
    """Reduced result of a fleet scan"""

    total_components: int = 0
    components_with_exceptions: int = 0
    total_exceptions: int = 0
    by_severity: Dict[str, int] = Field(default_factory=lambda: {s.value: 0 for s in Severity})
    exceptions: List[IntegrityException] = Field(default_factory=list)
    errors: List[ScanError] = Field(default_factory=list)
    cancelled: bool = False
    skipped_component_ids: List[str] = Field(default_factory=list)
