"""
Tests for the facility stop aggregator
"""
from datetime import datetime

import pytest

from aerotrace.core.models import ComponentStatus, Evidence, TrustLevel
from aerotrace.core.verification.completeness import find_gaps
from aerotrace.core.verification.facility_stops import (
    activity_label,
    build_facility_stops,
    classify_trust,
    facility_key,
    parse_facility_name,
)

MFG_DATE = datetime(2019, 1, 1)
MRO = "ACE Services, Singapore"
AIRLINE = "Delta ATL TechOps"


@pytest.mark.parametrize(
    "facility, expected",
    [
        ("Parker Aerospace — Hydraulic Systems Division", ("Parker Aerospace", None)),
        ("Parker Aerospace – Hydraulic Systems Division", ("Parker Aerospace", None)),
        ("ACE Services, Singapore", ("ACE Services", "Singapore")),
        ("AAR Corp, Miami, FL", ("AAR Corp", "Miami")),
        ("Delta ATL TechOps", ("Delta", "ATL")),
        ("United SFO Maintenance", ("United", "SFO")),
        ("Honeywell Aerospace", ("Honeywell Aerospace", None)),
        (None, ("Unknown facility", None)),
        ("   ", ("Unknown facility", None)),
    ],
)
def test_parse_facility_name(facility, expected):
    assert parse_facility_name(facility) == expected


def test_facility_key_ignores_case_and_spacing():
    assert facility_key("ACE  Services, Singapore") == facility_key("ace services, singapore")
    assert facility_key(None) == "unknown"


class TestActivityLabel:

    @pytest.mark.parametrize(
        "types, label",
        [
            (["manufacture", "final_inspection"], "MFG"),
            (["receiving_inspection", "teardown", "repair", "release_to_service"], "OH"),
            (["remove", "scrap"], "RTR"),
            (["receiving_inspection"], "INSP"),
            (["install"], "SVC"),
            (["transfer"], "DIST"),
            (["functional_test", "release_to_service"], "RTS"),
            (["remove"], "RMV"),
            (["functional_test"], "SVC"),
        ],
    )
    def test_labels(self, make_event, types, label):
        events = [make_event(t, "2020-01-01") for t in types]
        assert activity_label(events) == label


class TestTrust:

    def test_work_order_and_hash_is_verified(self, make_event):
        events = [make_event("repair", "2020-01-01", work_order_ref="WO-77", hash="ab12")]
        assert classify_trust(events, None) == TrustLevel.VERIFIED

    def test_certification_and_hash_is_verified(self, make_event):
        events = [make_event("repair", "2020-01-01", facility_cert="R4SR123K", hash="ab12")]
        assert classify_trust(events, None) == TrustLevel.VERIFIED

    def test_work_order_without_hash_is_partial(self, make_event):
        events = [make_event("repair", "2020-01-01", work_order_ref="WO-77")]
        assert classify_trust(events, None) == TrustLevel.PARTIAL

    def test_evidence_only_is_partial(self, make_event):
        events = [make_event("repair", "2020-01-01", evidence=[Evidence(type="photo")])]
        assert classify_trust(events, None) == TrustLevel.PARTIAL

    def test_nothing_is_unknown(self, make_event):
        assert classify_trust([make_event("repair", "2020-01-01")], None) == TrustLevel.UNKNOWN


class TestBuildFacilityStops:

    def test_groups_consecutive_events(self, make_event):
        events = [
            make_event("manufacture", "2019-01-01"),
            make_event("final_inspection", "2019-01-03"),
            make_event("install", "2019-01-20", facility=AIRLINE),
            make_event("remove", "2019-06-01", facility=AIRLINE),
            make_event("receiving_inspection", "2019-06-10", facility=MRO),
        ]

        stops = build_facility_stops(events, [])

        assert [s.display_name for s in stops] == ["Parker Aerospace", "Delta", "ACE Services"]
        assert [s.event_count for s in stops] == [2, 2, 1]
        assert [s.activity for s in stops] == ["MFG", "SVC", "INSP"]
        assert stops[1].location == "ATL"
        assert stops[0].start_date == datetime(2019, 1, 1)
        assert stops[0].end_date == datetime(2019, 1, 3)

    def test_return_visit_is_a_new_stop(self, make_event):
        events = [
            make_event("receiving_inspection", "2020-01-01", facility=MRO),
            make_event("install", "2020-01-20", facility=AIRLINE),
            make_event("remove", "2020-02-01", facility=AIRLINE),
            make_event("receiving_inspection", "2020-02-10", facility=MRO),
        ]

        stops = build_facility_stops(events, [])

        assert len(stops) == 3
        assert stops[0].facility_key == stops[2].facility_key

    def test_gap_overrides_verified(self, make_event):
        """Paperwork after an unexplained 424-day absence does not restore trust"""
        manufacture = make_event("manufacture", "2019-01-01")
        arrival = make_event(
            "receiving_inspection", "2020-03-01", facility=MRO,
            work_order_ref="WO-1001", hash="c0ffee",
        )
        events = [manufacture, arrival]
        gaps = find_gaps(MFG_DATE, events, [])

        stops = build_facility_stops(events, gaps)

        assert len(stops) == 2
        assert stops[1].trust == TrustLevel.GAP
        assert stops[1].preceding_gap is not None
        assert stops[1].preceding_gap.days == 424
        # Without the gap the same stop would be verified
        assert classify_trust(stops[1].events, None) == TrustLevel.VERIFIED

    def test_gap_splits_same_facility(self, make_event):
        first = make_event("receiving_inspection", "2019-01-10", facility=MRO)
        second = make_event("repair", "2020-06-01", facility=MRO)
        events = [first, second]
        gaps = find_gaps(MFG_DATE, events, [])

        stops = build_facility_stops(events, gaps)

        assert len(stops) == 2
        assert stops[0].trust != TrustLevel.GAP
        assert stops[1].trust == TrustLevel.GAP

    def test_counts_evidence_and_documents(self, make_event, approved_doc):
        events = [
            make_event(
                "repair", "2020-01-01", facility=MRO,
                evidence=[Evidence(type="photo"), Evidence(type="measurement")],
                generated_docs=[approved_doc("work_order")],
            ),
        ]

        stop = build_facility_stops(events, [])[0]

        assert stop.evidence_count == 2
        assert stop.document_count == 1

    def test_current_stop(self, make_event):
        events = [make_event("manufacture", "2019-01-01"), make_event("install", "2019-01-20", facility=AIRLINE)]

        in_service = build_facility_stops(events, [], ComponentStatus.INSTALLED)
        retired = build_facility_stops(events, [], ComponentStatus.RETIRED)

        assert [s.is_current for s in in_service] == [False, True]
        assert not any(s.is_current for s in retired)

    def test_unknown_facility(self, make_event):
        stops = build_facility_stops([make_event("transfer", "2020-01-01", facility=None)], [])

        assert stops[0].display_name == "Unknown facility"
        assert stops[0].trust == TrustLevel.UNKNOWN

    def test_undated_events_skipped(self, make_event):
        events = [make_event("manufacture", "2019-01-01"), make_event("install", "not recorded", facility=AIRLINE)]

        stops = build_facility_stops(events, [])

        assert len(stops) == 1
