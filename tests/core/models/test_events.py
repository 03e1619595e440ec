"""
Tests for LifecycleEvent and the document models
"""
import pytest
from datetime import datetime
from aerotrace.core.models.events import EventType, FacilityType, LifecycleEvent
from aerotrace.core.models.documents import Document, DocumentType, GeneratedDocument, DocumentStatus


class TestLifecycleEvent:
    """LifecycleEvent model tests"""

    def test_create_event_minimal(self):
        event = LifecycleEvent(event_type="install")

        assert event.id is not None
        assert event.event_type == EventType.INSTALL
        assert event.date is None
        assert event.facility is None
        assert isinstance(event.evidence, list)
        assert isinstance(event.generated_docs, list)

    def test_date_parsing(self):
        """Date-only, full ISO and UTC "Z" strings all parse to naive UTC"""
        assert LifecycleEvent(event_type="remove", date="2019-03-15").date == datetime(2019, 3, 15)
        assert LifecycleEvent(event_type="remove", date="2019-03-15T10:30:00Z").date == datetime(2019, 3, 15, 10, 30)
        assert LifecycleEvent(event_type="remove", date="2019-03-15T12:00:00+02:00").date == datetime(2019, 3, 15, 10, 0)

    def test_malformed_date_becomes_none(self):
        """Unparseable dates are excluded instead of failing the record"""
        event = LifecycleEvent(event_type="remove", date="sometime in spring")
        assert event.date is None

    def test_facility_type_coercion(self):
        assert LifecycleEvent(event_type="repair", facility_type="MRO").facility_type == FacilityType.MRO
        assert LifecycleEvent(event_type="repair", facility_type="warehouse").facility_type is None

    def test_sealed_event_rejects_changes(self):
        event = LifecycleEvent(event_type="repair", date="2020-01-01", hash="9f2c1a")

        with pytest.raises(TypeError):
            event.description = "edited later"

        assert event.description == ""

    def test_unsealed_event_can_be_sealed(self):
        event = LifecycleEvent(event_type="repair", date="2020-01-01")
        event.notes = "draft"
        event.hash = "9f2c1a"

        with pytest.raises(TypeError):
            event.notes = "changed"

    def test_certification(self):
        assert LifecycleEvent(event_type="repair", facility_cert="R4SR123K").certification == "R4SR123K"
        assert LifecycleEvent(event_type="repair", performer_cert="A&P 3345").certification == "A&P 3345"
        assert LifecycleEvent(event_type="repair").certification is None

    def test_has_document(self):
        event = LifecycleEvent(
            event_type="release_to_service",
            generated_docs=[GeneratedDocument(doc_type="8130")],
        )
        assert event.has_document(DocumentType.FORM_8130_3)
        assert not event.has_document(DocumentType.BIRTH_CERTIFICATE)


class TestDocuments:
    """Document model tests"""

    def test_generated_document_defaults(self):
        doc = GeneratedDocument(doc_type="work_order")

        assert doc.status == DocumentStatus.DRAFT
        assert doc.created_at is not None

    def test_effective_date(self):
        issued = Document(doc_type="8130-3", date="2020-05-01", created_at="2023-01-01")
        uploaded = Document(doc_type="8130-3", created_at="2023-01-01")

        assert issued.effective_date == datetime(2020, 5, 1)
        assert uploaded.effective_date == datetime(2023, 1, 1)

    def test_unknown_doc_type_rejected(self):
        with pytest.raises(ValueError):
            Document(doc_type="napkin sketch")
