"""
Component model: a serialized aerospace part and its recorded history.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, List
from uuid import NAMESPACE_URL, uuid4, uuid5
from pydantic import BaseModel, Field, field_validator, model_validator

from ...infrastructure.utils.time_util import parse_datetime
from .events import LifecycleEvent
from .documents import Document
from .exceptions import IntegrityException


class ComponentStatus(str, Enum):
    """Current status of a component"""
    SERVICEABLE = "serviceable"
    INSTALLED = "installed"
    IN_REPAIR = "in_repair"
    QUARANTINED = "quarantined"
    RETIRED = "retired"
    SCRAPPED = "scrapped"

    @property
    def is_terminal(self) -> bool:
        """Retired and scrapped parts have a closed history"""
        return self in (ComponentStatus.RETIRED, ComponentStatus.SCRAPPED)


def _stable_id(*parts) -> str:
    return str(uuid5(NAMESPACE_URL, "/".join(str(p) for p in parts)))


def _with_record_id(record, owner_id: str, kind: str, index: int, *fields: str):
    """Copy of a raw record, with an id derived from owner, position and content if it has none"""
    if not isinstance(record, dict):
        return record
    record = dict(record)
    if not record.get("id"):
        record["id"] = _stable_id(owner_id, kind, index, *(record.get(f) for f in fields))
    return record


class Component(BaseModel):
    """A component with its lifecycle events and document library"""

    id: str = Field(default_factory=lambda: str(uuid4()))
    part_number: str
    serial_number: str
    description: str = ""
    oem: Optional[str] = Field(None, description="Original equipment manufacturer")
    manufacture_date: Optional[datetime] = None

    total_hours: Optional[float] = None
    total_cycles: Optional[float] = None
    is_life_limited: bool = False
    life_limit_hours: Optional[float] = None
    life_limit_cycles: Optional[float] = None

    status: ComponentStatus = ComponentStatus.SERVICEABLE

    events: List[LifecycleEvent] = Field(default_factory=list)
    documents: List[Document] = Field(default_factory=list)
    exceptions: List[IntegrityException] = Field(default_factory=list, description="Persisted findings")

    @model_validator(mode="before")
    @classmethod
    def assign_record_ids(cls, data):
        """
        Give id-less raw events and documents an id derived from their position
        and content, so the same record loads with the same id every time.
        Finding keys are built from these ids.
        """
        if not isinstance(data, dict) or not data.get("id"):
            return data
        component_id = data["id"]
        data = dict(data)

        events = data.get("events")
        if isinstance(events, list):
            keyed = []
            for i, raw in enumerate(events):
                event = _with_record_id(raw, component_id, "event", i, "event_type", "date")
                if isinstance(event, dict) and isinstance(event.get("generated_docs"), list):
                    event["generated_docs"] = [
                        _with_record_id(doc, event["id"], "doc", j, "doc_type")
                        for j, doc in enumerate(event["generated_docs"])
                    ]
                keyed.append(event)
            data["events"] = keyed

        documents = data.get("documents")
        if isinstance(documents, list):
            data["documents"] = [
                _with_record_id(doc, component_id, "document", i, "doc_type", "date")
                for i, doc in enumerate(documents)
            ]
        return data

    @field_validator("manufacture_date", mode="before")
    @classmethod
    def parse_manufacture_date(cls, v):
        return parse_datetime(v)

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        # "in-repair" as used by some upstream systems
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_")
        return v

    @property
    def identity(self) -> str:
        return f"P/N {self.part_number} S/N {self.serial_number}"

    def add_event(self, event: LifecycleEvent) -> None:
        """
        Append an event to the history (never replaces existing records).

        Args:
            event: the new lifecycle event
        """
        self.events.append(event)

    def add_document(self, document: Document) -> None:
        self.documents.append(document)
