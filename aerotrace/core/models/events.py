"""
Lifecycle event model: one thing that happened to a component.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, List
from uuid import uuid4
from pydantic import BaseModel, Field, field_validator

from ...infrastructure.utils.time_util import parse_datetime
from .evidence import Evidence
from .documents import DocumentType, GeneratedDocument


class EventType(str, Enum):
    """Lifecycle event types"""
    MANUFACTURE = "manufacture"
    INSTALL = "install"
    REMOVE = "remove"
    RECEIVING_INSPECTION = "receiving_inspection"
    TEARDOWN = "teardown"
    DETAILED_INSPECTION = "detailed_inspection"
    REPAIR = "repair"
    REASSEMBLY = "reassembly"
    FUNCTIONAL_TEST = "functional_test"
    FINAL_INSPECTION = "final_inspection"
    RELEASE_TO_SERVICE = "release_to_service"
    TRANSFER = "transfer"
    RETIRE = "retire"
    SCRAP = "scrap"


# Shop work that requires a release certificate before the part flies again
MAJOR_SHOP_EVENTS = {EventType.TEARDOWN, EventType.REPAIR, EventType.REASSEMBLY}

TERMINAL_EVENTS = {EventType.RETIRE, EventType.SCRAP}


class FacilityType(str, Enum):
    """Kind of organisation holding the component"""
    OEM = "oem"
    AIRLINE = "airline"
    MRO = "mro"
    DISTRIBUTOR = "distributor"
    BROKER = "broker"


class PartConsumed(BaseModel):
    """A part or consumable used during the event"""

    id: str = Field(default_factory=lambda: str(uuid4()))
    part_number: str
    serial_number: Optional[str] = None
    description: str = ""
    quantity: int = 1


class LifecycleEvent(BaseModel):
    """
    A typed lifecycle record.

    History is append-only: once an integrity hash is recorded the event is
    sealed and any attribute assignment raises TypeError.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: EventType
    date: Optional[datetime] = Field(None, description="When the event happened (None if unknown)")

    facility: Optional[str] = Field(None, description="Full facility name")
    facility_type: Optional[FacilityType] = None
    facility_cert: Optional[str] = Field(None, description="Facility certificate, e.g. FAA Part 145 number")
    performer: Optional[str] = None
    performer_cert: Optional[str] = Field(None, description="Performer certification, e.g. A&P number")
    description: str = ""

    hours_at_event: Optional[float] = Field(None, description="Cumulative hours at the event")
    cycles_at_event: Optional[float] = Field(None, description="Cumulative cycles at the event")
    aircraft: Optional[str] = None
    operator: Optional[str] = None

    work_order_ref: Optional[str] = None
    cmm_reference: Optional[str] = None
    notes: Optional[str] = None
    hash: Optional[str] = Field(None, description="Integrity hash of the record")

    # Identity as written on the event record, checked against the component
    recorded_part_number: Optional[str] = None
    recorded_serial_number: Optional[str] = None

    evidence: List[Evidence] = Field(default_factory=list)
    generated_docs: List[GeneratedDocument] = Field(default_factory=list)
    parts_consumed: List[PartConsumed] = Field(default_factory=list)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return parse_datetime(v)

    @field_validator("facility_type", mode="before")
    @classmethod
    def coerce_facility_type(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in FacilityType._value2member_map_:
                return None
        return v

    def __setattr__(self, name, value):
        if self.hash:
            raise TypeError(f"LifecycleEvent {self.id} is sealed by its integrity hash")
        super().__setattr__(name, value)

    @property
    def certification(self) -> Optional[str]:
        """Facility or performer certification, whichever is recorded"""
        return self.facility_cert or self.performer_cert

    def has_document(self, doc_type: DocumentType) -> bool:
        return any(d.doc_type == doc_type for d in self.generated_docs)

    def __repr__(self) -> str:
        when = self.date.date().isoformat() if self.date else "undated"
        return f"LifecycleEvent({self.event_type.value} @ {self.facility!r}, {when})"
