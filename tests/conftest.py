"""
Shared fixtures: component and event builders.
"""
from datetime import datetime

import pytest

from aerotrace.core.models import (
    Component,
    DocumentStatus,
    DocumentType,
    GeneratedDocument,
    LifecycleEvent,
)

NOW = datetime(2024, 6, 1)

OEM = "Parker Aerospace — Hydraulic Systems Division"
AIRLINE = "Delta ATL TechOps"
MRO = "ACE Services, Singapore"


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_event():
    """Builds a LifecycleEvent; date strings are parsed by the model"""
    def _make(event_type, date, facility=OEM, **kwargs):
        return LifecycleEvent(event_type=event_type, date=date, facility=facility, **kwargs)
    return _make


@pytest.fixture
def approved_doc():
    def _make(doc_type):
        return GeneratedDocument(doc_type=doc_type, status=DocumentStatus.APPROVED, created_at=datetime(2019, 1, 1))
    return _make


@pytest.fixture
def make_component():
    def _make(events=(), documents=(), **kwargs):
        fields = {
            "id": "COMP-1",
            "part_number": "881700-1089",
            "serial_number": "SN-001",
            "oem": OEM,
            "manufacture_date": "2019-01-01",
        }
        fields.update(kwargs)
        return Component(events=list(events), documents=list(documents), **fields)
    return _make


@pytest.fixture
def clean_component(make_component, make_event, approved_doc):
    """A history every rule accepts: certified birth, certified install, no gaps"""
    manufacture = make_event(
        "manufacture", "2019-01-01",
        facility_type="oem", facility_cert="PC-0123",
        generated_docs=[approved_doc(DocumentType.BIRTH_CERTIFICATE)],
    )
    install = make_event(
        "install", "2019-01-20", facility=AIRLINE, facility_type="airline",
        hours_at_event=0, cycles_at_event=0,
        generated_docs=[approved_doc(DocumentType.FORM_8130_3)],
    )
    return make_component(events=[manufacture, install], status="installed")
