"""
Trace Completeness Scorer.

Measures how well a component's life is documented end to end. Long
stretches where nobody can say where the part was are a red flag for
counterfeit parts, undisclosed repairs or supply chain diversion.
"""
import logging
from datetime import datetime
from typing import List, Optional, Sequence, Set

from ...config.settings import settings as default_settings, GapThresholds, ScoreWeights
from ...infrastructure.utils.time_util import days_between, utc_now
from ..models.component import Component
from ..models.documents import Document, DocumentType
from ..models.events import EventType, LifecycleEvent, MAJOR_SHOP_EVENTS
from ..models.trace import Severity, TraceCompleteness, TraceGap, TraceRating
from .sequencer import sequence_events

logger = logging.getLogger(__name__)

# Days of coverage each event type provides around its date.
# An install covers every day until the next removal.
EVENT_COVERAGE_DAYS = {
    EventType.MANUFACTURE: 7,
    EventType.REMOVE: 7,
    EventType.RECEIVING_INSPECTION: 14,
    EventType.TEARDOWN: 7,
    EventType.DETAILED_INSPECTION: 7,
    EventType.REPAIR: 14,
    EventType.REASSEMBLY: 7,
    EventType.FUNCTIONAL_TEST: 7,
    EventType.FINAL_INSPECTION: 7,
    EventType.RELEASE_TO_SERVICE: 14,
    EventType.TRANSFER: 14,   # shipping and receiving time
    EventType.RETIRE: 7,
    EventType.SCRAP: 7,
}


def gap_severity(days: int, thresholds: Optional[GapThresholds] = None) -> Optional[Severity]:
    """Severity tier of an undocumented interval, or None below the info threshold"""
    thresholds = thresholds or default_settings.get_gap_thresholds()
    if days > thresholds.critical:
        return Severity.CRITICAL
    if days > thresholds.warning:
        return Severity.WARNING
    if days > thresholds.info:
        return Severity.INFO
    return None


def _strictly_inside(moment: Optional[datetime], start: datetime, end: datetime) -> bool:
    return moment is not None and start.date() < moment.date() < end.date()


def _is_bridged(
    earlier: Optional[LifecycleEvent],
    start: datetime,
    end: datetime,
    events: Sequence[LifecycleEvent],
    documents: Sequence[Document],
) -> bool:
    """Whether something documents custody between two consecutive events"""
    # Installed parts are flying; the installation record covers the interval
    if earlier is not None and earlier.event_type == EventType.INSTALL:
        return True
    if any(_strictly_inside(doc.date, start, end) for doc in documents):
        return True
    for event in events:
        if any(_strictly_inside(ev.captured_at, start, end) for ev in event.evidence):
            return True
    return False


def find_gaps(
    manufacture_date: Optional[datetime],
    events: Sequence[LifecycleEvent],
    documents: Sequence[Document],
    origin_facility: Optional[str] = None,
    thresholds: Optional[GapThresholds] = None,
) -> List[TraceGap]:
    """
    Walk consecutive sequenced events and report unbridged intervals.

    An interval's length is the number of calendar days strictly between its
    two records, so 2019-01-01 -> 2020-03-01 is 424 days. The severity
    thresholds apply to that count: with the default 30-day info threshold
    records 31 days apart (30 days between) are not a gap, 32 days apart are.

    When the history has no manufacture event, the manufacture date is used
    as a leading anchor so the stretch before the first recorded event is
    also checked.

    Args:
        manufacture_date: component birth date
        events: chronologically sequenced, dated events
        documents: the component's document library
        origin_facility: facility used for the manufacture anchor (usually the OEM)
        thresholds: severity thresholds, settings by default

    Returns:
        TraceGap list in chronological order
    """
    # (event or None for the anchor, date, type label, facility)
    points = []
    has_manufacture = any(e.event_type == EventType.MANUFACTURE for e in events)
    if manufacture_date is not None and not has_manufacture and events and events[0].date > manufacture_date:
        points.append((None, manufacture_date, EventType.MANUFACTURE.value, origin_facility))
    points.extend((e, e.date, e.event_type.value, e.facility) for e in events)

    gaps: List[TraceGap] = []
    for (prev, prev_date, prev_type, prev_fac), (curr, curr_date, curr_type, curr_fac) in zip(points, points[1:]):
        # Calendar days strictly between the two records
        undocumented = days_between(prev_date, curr_date) - 1
        severity = gap_severity(undocumented, thresholds)
        if severity is None:
            continue
        if _is_bridged(prev, prev_date, curr_date, events, documents):
            continue
        gaps.append(TraceGap(
            start_date=prev_date,
            end_date=curr_date,
            days=undocumented,
            severity=severity,
            last_event=prev_type,
            next_event=curr_type,
            last_event_id=prev.id if prev is not None else None,
            next_event_id=curr.id,
            last_facility=prev_fac or "Unknown",
            next_facility=curr_fac or "Unknown",
        ))
    return gaps


def _documented_days(birth: datetime, events: Sequence[LifecycleEvent], total_days: int) -> int:
    """Size of the day-coverage map built from per-event coverage windows"""
    covered: Set[int] = set()
    for i, event in enumerate(events):
        offset = days_between(birth, event.date)
        if event.event_type == EventType.INSTALL:
            end_offset = total_days
            for later in events[i + 1:]:
                if later.event_type == EventType.REMOVE:
                    end_offset = days_between(birth, later.date)
                    break
            covered.update(range(max(offset, 0), min(end_offset, total_days) + 1))
        else:
            window = EVENT_COVERAGE_DAYS.get(event.event_type, 7)
            covered.update(range(max(offset - window, 0), min(offset + window, total_days) + 1))
    return min(len(covered), total_days)


def _has_birth_record(events: Sequence[LifecycleEvent], documents: Sequence[Document]) -> bool:
    if any(e.event_type == EventType.MANUFACTURE for e in events):
        return True
    if any(d.doc_type == DocumentType.BIRTH_CERTIFICATE for d in documents):
        return True
    return any(e.has_document(DocumentType.BIRTH_CERTIFICATE) for e in events)


def _has_release_after_last_shop_visit(events: Sequence[LifecycleEvent], documents: Sequence[Document]) -> bool:
    """Release-to-service record at or after the most recent major shop event"""
    shop_dates = [e.date for e in events if e.event_type in MAJOR_SHOP_EVENTS]
    if not shop_dates:
        return True
    last_shop = max(shop_dates)
    for event in events:
        if event.date < last_shop:
            continue
        if event.event_type == EventType.RELEASE_TO_SERVICE or event.has_document(DocumentType.FORM_8130_3):
            return True
    return any(
        d.doc_type == DocumentType.FORM_8130_3 and d.date is not None and d.date >= last_shop
        for d in documents
    )


def calculate_trace_completeness(
    manufacture_date: Optional[datetime],
    events: Sequence[LifecycleEvent],
    documents: Sequence[Document],
    retired_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
    origin_facility: Optional[str] = None,
    weights: Optional[ScoreWeights] = None,
    thresholds: Optional[GapThresholds] = None,
) -> TraceCompleteness:
    """
    Score how completely a component's lifecycle is documented.

    Score (0-100) = coverage x (1 - gap days / lifecycle days)
                  + birth record present
                  + release record after the most recent shop visit

    Adding a gap or dropping a required document never raises the score;
    closing a gap or adding a missing document never lowers it.

    Args:
        manufacture_date: component birth date
        events: lifecycle events in any order
        documents: the component's document library
        retired_date: end of the analysis window; `now` when still in service
        now: reference time for in-service components
        origin_facility: facility for the manufacture anchor
        weights: score weights, settings by default
        thresholds: gap severity thresholds, settings by default

    Returns:
        TraceCompleteness
    """
    weights = weights or default_settings.get_score_weights()
    sequenced = sequence_events(events)
    ordered = sequenced.events

    if not ordered or manufacture_date is None:
        if manufacture_date is None and ordered:
            logger.warning("[Completeness] Missing manufacture date, returning conservative score")
        return TraceCompleteness.empty(total_events=len(events), total_documents=len(documents))

    end = retired_date or now or utc_now()
    total_days = max(1, days_between(manufacture_date, end))

    gaps = find_gaps(manufacture_date, ordered, documents, origin_facility=origin_facility, thresholds=thresholds)
    total_gap_days = sum(g.days for g in gaps)

    gap_ratio = min(1.0, total_gap_days / total_days)
    score = weights.coverage * (1.0 - gap_ratio)
    if _has_birth_record(ordered, documents):
        score += weights.birth_record
    if _has_release_after_last_shop_visit(ordered, documents):
        score += weights.release_record
    score = max(0, min(100, round(score)))

    return TraceCompleteness(
        score=score,
        rating=TraceRating.from_score(score),
        total_days=total_days,
        documented_days=_documented_days(manufacture_date, ordered, total_days),
        total_events=len(events),
        total_documents=len(documents),
        gap_count=len(gaps),
        total_gap_days=total_gap_days,
        gaps=gaps,
    )


def analysis_end_date(component: Component) -> Optional[datetime]:
    """Retired and scrapped parts are analysed up to their last recorded event"""
    if not component.status.is_terminal:
        return None
    dates = [e.date for e in component.events if e.date is not None]
    return max(dates) if dates else None


def compute_trace(component: Component, now: Optional[datetime] = None, settings=default_settings) -> TraceCompleteness:
    """Completeness of one component's trace, with thresholds and weights from `settings`"""
    return calculate_trace_completeness(
        component.manufacture_date,
        component.events,
        component.documents,
        retired_date=analysis_end_date(component),
        now=now,
        origin_facility=component.oem,
        weights=settings.get_score_weights(),
        thresholds=settings.get_gap_thresholds(),
    )
