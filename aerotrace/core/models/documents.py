"""
Compliance documents: generated per event, or held in the component's document library.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4
from pydantic import BaseModel, Field, field_validator

from ...infrastructure.utils.time_util import parse_datetime, utc_now


class DocumentType(str, Enum):
    """Compliance document types"""
    FORM_8130_3 = "8130-3"            # Authorized release certificate
    FORM_337 = "337"                  # Major repair and alteration
    FORM_8010_4 = "8010-4"            # Malfunction or defect report
    WORK_ORDER = "work_order"
    FINDINGS_REPORT = "findings_report"
    TEST_RESULTS = "test_results"
    BIRTH_CERTIFICATE = "birth_certificate"


class DocumentStatus(str, Enum):
    """Review state of a generated document"""
    DRAFT = "draft"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"


def _normalize_doc_type(v):
    # Uploaded libraries often record the release certificate as plain "8130"
    if isinstance(v, str) and v.strip().lower() in ("8130", "8130-3", "faa 8130-3"):
        return DocumentType.FORM_8130_3
    return v


class GeneratedDocument(BaseModel):
    """A compliance document generated for a lifecycle event"""

    id: str = Field(default_factory=lambda: str(uuid4()))
    doc_type: DocumentType
    title: str = ""
    status: DocumentStatus = DocumentStatus.DRAFT
    created_at: Optional[datetime] = Field(default_factory=utc_now)

    @field_validator("doc_type", mode="before")
    @classmethod
    def coerce_doc_type(cls, v):
        return _normalize_doc_type(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v):
        return parse_datetime(v)


class Document(BaseModel):
    """A document in the component's top-level library"""

    id: str = Field(default_factory=lambda: str(uuid4()))
    doc_type: DocumentType
    title: str = ""
    date: Optional[datetime] = Field(None, description="Date the document refers to (issue date)")
    created_at: Optional[datetime] = Field(default_factory=utc_now)

    @field_validator("doc_type", mode="before")
    @classmethod
    def coerce_doc_type(cls, v):
        return _normalize_doc_type(v)

    @field_validator("date", "created_at", mode="before")
    @classmethod
    def parse_dates(cls, v):
        return parse_datetime(v)

    @property
    def effective_date(self) -> Optional[datetime]:
        """Issue date, falling back to the upload time"""
        return self.date or self.created_at
