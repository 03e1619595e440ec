"""
Evidence model: an artifact captured while work was performed on a component.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any
from uuid import uuid4
from pydantic import BaseModel, Field, field_validator

from ...infrastructure.utils.time_util import parse_datetime


class EvidenceType(str, Enum):
    """Kind of captured artifact"""
    PHOTO = "photo"
    VIDEO = "video"
    VOICE_NOTE = "voice_note"
    MEASUREMENT = "measurement"
    DOCUMENT_SCAN = "document_scan"
    OTHER = "other"


class Evidence(BaseModel):
    """Evidence attached to a lifecycle event (read-only input to the engine)"""

    id: str = Field(default_factory=lambda: str(uuid4()))
    type: EvidenceType = EvidenceType.PHOTO
    file_name: Optional[str] = Field(None, description="Original file name")
    captured_at: Optional[datetime] = Field(None, description="When the artifact was captured")
    transcription: Optional[str] = Field(None, description="Voice note transcription, if any")
    extracted_data: Dict[str, Any] = Field(default_factory=dict, description="Structured extraction payload")

    @field_validator("captured_at", mode="before")
    @classmethod
    def parse_captured_at(cls, v):
        return parse_datetime(v)

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v):
        if isinstance(v, str) and v not in EvidenceType._value2member_map_:
            return EvidenceType.OTHER
        return v
