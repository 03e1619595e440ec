"""
Integrity exception models: typed findings produced by the rule engine.

"Exception" here is a data-integrity finding on a component, not a Python
exception.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, Tuple
from uuid import uuid4
from pydantic import BaseModel, Field

from ...infrastructure.utils.time_util import utc_now
from .trace import Severity


class ExceptionType(str, Enum):
    SERIAL_NUMBER_MISMATCH = "serial_number_mismatch"
    PART_NUMBER_MISMATCH = "part_number_mismatch"
    CYCLE_COUNT_DISCREPANCY = "cycle_count_discrepancy"
    HOUR_COUNT_DISCREPANCY = "hour_count_discrepancy"
    DOCUMENTATION_GAP = "documentation_gap"
    MISSING_RELEASE_CERTIFICATE = "missing_release_certificate"
    MISSING_BIRTH_CERTIFICATE = "missing_birth_certificate"
    DATE_INCONSISTENCY = "date_inconsistency"
    UNSIGNED_DOCUMENT = "unsigned_document"
    MISSING_FACILITY_CERTIFICATE = "missing_facility_certificate"


class ExceptionStatus(str, Enum):
    """Review status; only changed by human review"""
    OPEN = "open"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"

    @property
    def is_closed(self) -> bool:
        return self in (ExceptionStatus.RESOLVED, ExceptionStatus.DISMISSED)


class DetectedIssue(BaseModel):
    """What a rule reports before it is persisted"""

    exception_type: ExceptionType
    severity: Severity
    title: str
    description: str
    trigger_ref: str = Field(..., description="Stable reference to what triggered the rule (event id, event pair, document id)")
    evidence: Dict[str, Any] = Field(default_factory=dict)


class IntegrityException(BaseModel):
    """A persisted finding"""

    id: str = Field(default_factory=lambda: str(uuid4()))
    component_id: str
    exception_type: ExceptionType
    severity: Severity
    title: str
    description: str
    trigger_ref: str
    evidence: Dict[str, Any] = Field(default_factory=dict)

    status: ExceptionStatus = ExceptionStatus.OPEN
    detected_at: datetime = Field(default_factory=utc_now)
    last_detected_at: datetime = Field(default_factory=utc_now)
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolution_notes: Optional[str] = None
    # False once a scan no longer sees the triggering condition
    condition_active: bool = True

    @property
    def natural_key(self) -> Tuple[str, str, str]:
        return (self.component_id, self.exception_type.value, self.trigger_ref)

    @classmethod
    def from_issue(cls, component_id: str, issue: DetectedIssue, detected_at: datetime) -> "IntegrityException":
        return cls(
            component_id=component_id,
            exception_type=issue.exception_type,
            severity=issue.severity,
            title=issue.title,
            description=issue.description,
            trigger_ref=issue.trigger_ref,
            evidence=issue.evidence,
            detected_at=detected_at,
            last_detected_at=detected_at,
        )

    def __repr__(self) -> str:
        return f"IntegrityException({self.severity.value} {self.exception_type.value} [{self.status.value}] ref={self.trigger_ref})"
