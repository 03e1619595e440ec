"""
Facility Stop Aggregator.

Groups consecutive same-facility events into "stops" and classifies how well
each stop is documented.
"""
import logging
import re
from typing import Callable, List, Optional, Sequence, Set, Tuple

from ..models.component import ComponentStatus
from ..models.events import EventType, LifecycleEvent
from ..models.trace import FacilityStop, TraceGap, TrustLevel
from .sequencer import sequence_events

logger = logging.getLogger(__name__)

UNKNOWN_FACILITY = "Unknown facility"

_DIVISION_SUFFIX = re.compile(r"\s+[—–]\s+.*$")
_SITE_CODE_PATTERN = re.compile(
    r"^(?P<company>.+?)\s+(?P<code>[A-Z]{3})\s+(?:Maintenance|MRO|TechOps|Tech Ops)$"
)


def facility_key(facility: Optional[str]) -> str:
    """Normalized facility identity used to group events"""
    if not facility or not facility.strip():
        return "unknown"
    return " ".join(facility.split()).casefold()


def parse_facility_name(facility: Optional[str]) -> Tuple[str, Optional[str]]:
    """
    Split a full facility name into a short display name and a location.

    "Parker Aerospace — Hydraulic Systems Division" -> ("Parker Aerospace", None)
    "ACE Services, Singapore"                       -> ("ACE Services", "Singapore")
    "Delta ATL TechOps"                             -> ("Delta", "ATL")
    """
    if not facility or not facility.strip():
        return UNKNOWN_FACILITY, None

    name = _DIVISION_SUFFIX.sub("", " ".join(facility.split()))

    if ", " in name:
        short, rest = name.split(", ", 1)
        return short.strip(), rest.split(", ")[0].strip() or None

    match = _SITE_CODE_PATTERN.match(name)
    if match:
        return match.group("company"), match.group("code")

    return name, None


# Ordered: the first matching label wins
ACTIVITY_RULES: List[Tuple[str, Callable[[Set[EventType]], bool]]] = [
    ("MFG", lambda t: EventType.MANUFACTURE in t),
    ("OH", lambda t: bool(t & {EventType.TEARDOWN, EventType.REPAIR, EventType.REASSEMBLY})),
    ("RTR", lambda t: bool(t & {EventType.RETIRE, EventType.SCRAP})),
    ("INSP", lambda t: t == {EventType.RECEIVING_INSPECTION}),
    ("SVC", lambda t: EventType.INSTALL in t),
    ("DIST", lambda t: EventType.TRANSFER in t),
    ("RTS", lambda t: EventType.RELEASE_TO_SERVICE in t),
    ("RMV", lambda t: EventType.REMOVE in t),
]


def activity_label(events: Sequence[LifecycleEvent]) -> str:
    types = {e.event_type for e in events}
    for label, matches in ACTIVITY_RULES:
        if matches(types):
            return label
    return "SVC"


def _gap_ends_at(gap: TraceGap, event: LifecycleEvent) -> bool:
    if gap.next_event_id is not None:
        return gap.next_event_id == event.id
    return gap.end_date == event.date and facility_key(gap.next_facility) == facility_key(event.facility)


def _has_work_order(events: Sequence[LifecycleEvent]) -> bool:
    return any(e.work_order_ref for e in events)


def _has_certification(events: Sequence[LifecycleEvent]) -> bool:
    return any(e.certification for e in events)


def _has_hash(events: Sequence[LifecycleEvent]) -> bool:
    return any(e.hash for e in events)


def _has_evidence(events: Sequence[LifecycleEvent]) -> bool:
    return any(e.evidence for e in events)


# Ordered chain, first match wins. A break in custody always overrides.
TRUST_RULES: List[Tuple[TrustLevel, Callable[[Sequence[LifecycleEvent], Optional[TraceGap]], bool]]] = [
    (TrustLevel.GAP, lambda evs, gap: gap is not None),
    (TrustLevel.VERIFIED, lambda evs, gap: (_has_work_order(evs) or _has_certification(evs)) and _has_hash(evs)),
    (TrustLevel.PARTIAL, lambda evs, gap: _has_work_order(evs) or _has_certification(evs) or _has_evidence(evs)),
]


def classify_trust(events: Sequence[LifecycleEvent], preceding_gap: Optional[TraceGap]) -> TrustLevel:
    for level, matches in TRUST_RULES:
        if matches(events, preceding_gap):
            return level
    return TrustLevel.UNKNOWN


def _make_stop(events: List[LifecycleEvent], preceding_gap: Optional[TraceGap]) -> FacilityStop:
    first = events[0]
    display_name, location = parse_facility_name(first.facility)
    return FacilityStop(
        facility=first.facility or UNKNOWN_FACILITY,
        facility_key=facility_key(first.facility),
        facility_type=first.facility_type,
        display_name=display_name,
        location=location,
        activity=activity_label(events),
        start_date=first.date,
        end_date=events[-1].date,
        events=events,
        evidence_count=sum(len(e.evidence) for e in events),
        document_count=sum(len(e.generated_docs) for e in events),
        trust=classify_trust(events, preceding_gap),
        preceding_gap=preceding_gap,
    )


def build_facility_stops(
    events: Sequence[LifecycleEvent],
    gaps: Sequence[TraceGap],
    status: Optional[ComponentStatus] = None,
) -> List[FacilityStop]:
    """
    Aggregate events into facility stops.

    Consecutive events at the same facility form one stop. A documentation
    gap ends a stop: the event after the gap opens a new stop whose trust is
    GAP regardless of its paperwork.

    Args:
        events: the component's events (any order; undated events are skipped)
        gaps: TraceGap list from the completeness scorer
        status: component status; the last stop of a component still in
                service is marked current

    Returns:
        FacilityStop list in chronological order
    """
    ordered = sequence_events(events).events

    stops: List[FacilityStop] = []
    current: List[LifecycleEvent] = []
    current_gap: Optional[TraceGap] = None

    for event in ordered:
        gap = next((g for g in gaps if _gap_ends_at(g, event)), None)
        same_facility = bool(current) and facility_key(current[-1].facility) == facility_key(event.facility)
        if current and (gap is not None or not same_facility):
            stops.append(_make_stop(current, current_gap))
            current = []
        if not current:
            current_gap = gap
        current.append(event)

    if current:
        stops.append(_make_stop(current, current_gap))

    if stops and status is not None and not status.is_terminal:
        stops[-1].is_current = True

    logger.debug(f"[FacilityStops] {len(ordered)} events -> {len(stops)} stops")
    return stops
