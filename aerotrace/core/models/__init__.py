"""
Core domain models for the AeroTrace lifecycle integrity engine.
"""
from .evidence import Evidence, EvidenceType
from .documents import Document, DocumentStatus, DocumentType, GeneratedDocument
from .events import EventType, FacilityType, LifecycleEvent, PartConsumed
from .trace import (
    FacilityStop,
    Severity,
    TraceCompleteness,
    TraceGap,
    TraceRating,
    TrustLevel,
)
from .exceptions import DetectedIssue, ExceptionStatus, ExceptionType, IntegrityException
from .component import Component, ComponentStatus
from .scan import FleetScanSummary, ScanError, ScanResult

__all__ = [
    "Component",
    "ComponentStatus",
    "DetectedIssue",
    "Document",
    "DocumentStatus",
    "DocumentType",
    "EventType",
    "Evidence",
    "EvidenceType",
    "ExceptionStatus",
    "ExceptionType",
    "FacilityStop",
    "FacilityType",
    "FleetScanSummary",
    "GeneratedDocument",
    "IntegrityException",
    "LifecycleEvent",
    "PartConsumed",
    "ScanError",
    "ScanResult",
    "Severity",
    "TraceCompleteness",
    "TraceGap",
    "TraceRating",
    "TrustLevel",
]
