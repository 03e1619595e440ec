"""
Exception Rule Engine.

Examines one component's complete history (every event, document and
certificate) for inconsistencies: counters that run backwards, timelines that
do not make sense, and required paperwork that is missing.

Each rule is a stateless function over a RuleContext returning the issues it
found. Rules do not interact and their order does not matter.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional

from pydantic import BaseModel, ConfigDict

from ...config.settings import settings as default_settings
from ...infrastructure.utils.time_util import format_date, format_duration, utc_now
from ..models.component import Component
from ..models.documents import DocumentStatus, DocumentType
from ..models.events import EventType, FacilityType, LifecycleEvent, TERMINAL_EVENTS
from ..models.exceptions import DetectedIssue, ExceptionType
from ..models.trace import Severity, TraceCompleteness
from .completeness import compute_trace
from .sequencer import SequencedEvents, sequence_events

logger = logging.getLogger(__name__)

COMPONENT_REF = "component"


class RuleContext(BaseModel):
    """Everything a rule may look at"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    component: Component
    sequenced: SequencedEvents
    trace: TraceCompleteness
    now: datetime
    settings: Any = default_settings


def _normalize_identity(value: Optional[str]) -> str:
    return "".join((value or "").split()).upper()


# ---------------------------------------------------------
# Identity
# ---------------------------------------------------------

def check_identity_mismatch(ctx: RuleContext) -> List[DetectedIssue]:
    """Serial or part number recorded on an event must match the component"""
    issues = []
    comp = ctx.component
    for event in comp.events:
        checks = (
            (event.recorded_serial_number, comp.serial_number, ExceptionType.SERIAL_NUMBER_MISMATCH, "Serial"),
            (event.recorded_part_number, comp.part_number, ExceptionType.PART_NUMBER_MISMATCH, "Part"),
        )
        for recorded, canonical, exception_type, label in checks:
            if not recorded or _normalize_identity(recorded) == _normalize_identity(canonical):
                continue
            issues.append(DetectedIssue(
                exception_type=exception_type,
                severity=Severity.CRITICAL,
                title=f"{label} Number Mismatch",
                description=(
                    f"The {event.event_type.value} record on {format_date(event.date)} at "
                    f"{event.facility or 'an unknown facility'} lists {label.lower()} number "
                    f"{recorded}, but this component is {canonical}. The record may belong to "
                    f"a different part."
                ),
                trigger_ref=event.id,
                evidence={"eventId": event.id, "recorded": recorded, "expected": canonical},
            ))
    return issues


# ---------------------------------------------------------
# Usage counters
# ---------------------------------------------------------

_COUNTER_TYPES = {
    "hours": (ExceptionType.HOUR_COUNT_DISCREPANCY, "Flight Hours"),
    "cycles": (ExceptionType.CYCLE_COUNT_DISCREPANCY, "Cycle Count"),
}


def check_counter_discrepancy(ctx: RuleContext) -> List[DetectedIssue]:
    """Cumulative hours and cycles only go up over a component's life"""
    issues = []
    for reg in ctx.sequenced.regressions:
        exception_type, label = _COUNTER_TYPES[reg.counter]
        issues.append(DetectedIssue(
            exception_type=exception_type,
            severity=Severity.CRITICAL,
            title=f"{label} Decreased Between Events",
            description=(
                f"{label} decreased from {reg.earlier_value:,g} on {format_date(reg.earlier_date)} "
                f"to {reg.later_value:,g} on {format_date(reg.later_date)}. Cumulative "
                f"{reg.counter} should only increase; the records may have been mixed up "
                f"with another part or mis-entered."
            ),
            trigger_ref=reg.trigger_ref,
            evidence={
                "eventA": {"id": reg.earlier_event_id, "date": reg.earlier_date.isoformat(), reg.counter: reg.earlier_value},
                "eventB": {"id": reg.later_event_id, "date": reg.later_date.isoformat(), reg.counter: reg.later_value},
                "delta": reg.delta,
            },
        ))
    return issues


def check_counter_rate(ctx: RuleContext) -> List[DetectedIssue]:
    """Implied usage rate between readings must be physically possible"""
    issues = []
    for anomaly in ctx.sequenced.rate_anomalies:
        exception_type, label = _COUNTER_TYPES[anomaly.counter]
        issues.append(DetectedIssue(
            exception_type=exception_type,
            severity=Severity.WARNING,
            title=f"Implausible {label} Rate",
            description=(
                f"Implied rate of {anomaly.rate_per_day} {anomaly.counter}/day between "
                f"{format_date(anomaly.earlier_date)} and {format_date(anomaly.later_date)}. "
                f"This may indicate a data entry error."
            ),
            trigger_ref=anomaly.trigger_ref,
            evidence={
                "eventA": {"id": anomaly.earlier_event_id, anomaly.counter: anomaly.earlier_value},
                "eventB": {"id": anomaly.later_event_id, anomaly.counter: anomaly.later_value},
                "ratePerDay": anomaly.rate_per_day,
                "daysBetween": anomaly.days_between,
            },
        ))
    return issues


# ---------------------------------------------------------
# Certificates
# ---------------------------------------------------------

def check_missing_birth_certificate(ctx: RuleContext) -> List[DetectedIssue]:
    """The manufacture record must carry the birth certificate"""
    comp = ctx.component
    manufacture = [e for e in comp.events if e.event_type == EventType.MANUFACTURE]
    if any(e.has_document(DocumentType.BIRTH_CERTIFICATE) for e in manufacture):
        return []

    if manufacture:
        detail = "has a manufacture event but no birth certificate attached to it"
    else:
        detail = "has no manufacture event in its lifecycle history"
    return [DetectedIssue(
        exception_type=ExceptionType.MISSING_BIRTH_CERTIFICATE,
        severity=Severity.CRITICAL,
        title="Missing Birth Certificate",
        description=(
            f"Component {comp.identity} {detail}. Without the original equipment release "
            f"certificate the part's origin cannot be verified."
        ),
        trigger_ref=COMPONENT_REF,
        evidence={
            "componentId": comp.id,
            "manufactureEventIds": [e.id for e in manufacture],
            "documentTypes": [d.doc_type.value for d in comp.documents],
        },
    )]


def check_missing_release_certificate(ctx: RuleContext) -> List[DetectedIssue]:
    """Return to service and installation need an attached 8130-3"""
    issues = []
    for event in ctx.component.events:
        if event.event_type not in (EventType.RELEASE_TO_SERVICE, EventType.INSTALL):
            continue
        if event.has_document(DocumentType.FORM_8130_3):
            continue
        issues.append(DetectedIssue(
            exception_type=ExceptionType.MISSING_RELEASE_CERTIFICATE,
            severity=Severity.WARNING,
            title="Missing Release Certificate (8130-3)",
            description=(
                f"The {event.event_type.value} event on {format_date(event.date)} at "
                f"{event.facility or 'an unknown facility'} has no FAA Form 8130-3 attached. "
                f"A release certificate is required for a part entering service."
            ),
            trigger_ref=event.id,
            evidence={
                "eventId": event.id,
                "eventType": event.event_type.value,
                "facility": event.facility,
            },
        ))
    return issues


def check_missing_facility_certificate(ctx: RuleContext) -> List[DetectedIssue]:
    """Work at an MRO or OEM needs a facility or performer certificate on record"""
    issues = []
    for event in ctx.component.events:
        if event.facility_type not in (FacilityType.MRO, FacilityType.OEM):
            continue
        if event.certification:
            continue
        issues.append(DetectedIssue(
            exception_type=ExceptionType.MISSING_FACILITY_CERTIFICATE,
            severity=Severity.WARNING,
            title="Facility Certificate Missing",
            description=(
                f"The {event.event_type.value} event on {format_date(event.date)} at "
                f"{event.facility or 'an unknown facility'} has neither a facility certificate "
                f"nor a performer certification recorded."
            ),
            trigger_ref=event.id,
            evidence={
                "eventId": event.id,
                "facility": event.facility,
                "facilityType": event.facility_type.value,
            },
        ))
    return issues


# ---------------------------------------------------------
# Timeline
# ---------------------------------------------------------

def check_documentation_gaps(ctx: RuleContext) -> List[DetectedIssue]:
    """Every undocumented interval found by the scorer is a finding"""
    issues = []
    for gap in ctx.trace.gaps:
        issues.append(DetectedIssue(
            exception_type=ExceptionType.DOCUMENTATION_GAP,
            severity=gap.severity,
            title=f"Documentation Gap: {format_duration(gap.days)}",
            description=(
                f"No records between {gap.last_event} at {gap.last_facility} on "
                f"{format_date(gap.start_date)} and {gap.next_event} at {gap.next_facility} on "
                f"{format_date(gap.end_date)}. {gap.days} days unaccounted for."
            ),
            trigger_ref=f"{gap.last_event_id or 'manufacture'}:{gap.next_event_id}",
            evidence={
                "startDate": gap.start_date.isoformat(),
                "endDate": gap.end_date.isoformat(),
                "lastFacility": gap.last_facility,
                "nextFacility": gap.next_facility,
                "gapDays": gap.days,
            },
        ))
    return issues


def _date_issue(title: str, description: str, trigger_ref: str, evidence: dict) -> DetectedIssue:
    return DetectedIssue(
        exception_type=ExceptionType.DATE_INCONSISTENCY,
        severity=Severity.CRITICAL,
        title=title,
        description=description,
        trigger_ref=trigger_ref,
        evidence=evidence,
    )


def check_date_inconsistency(ctx: RuleContext) -> List[DetectedIssue]:
    """Events must fit a possible timeline for the part"""
    issues = []
    comp = ctx.component
    events = ctx.sequenced.events

    # Records should already be in date order as written
    recorded = [e for e in comp.events if e.date is not None]
    for current, following in zip(recorded, recorded[1:]):
        if following.date < current.date:
            issues.append(_date_issue(
                "Events Out of Chronological Order",
                f"The {following.event_type.value} event on {format_date(following.date)} is recorded after "
                f"the {current.event_type.value} event on {format_date(current.date)} but occurs before it.",
                f"{current.id}:{following.id}:out_of_order",
                {"eventA": {"id": current.id, "type": current.event_type.value, "date": current.date.isoformat()},
                 "eventB": {"id": following.id, "type": following.event_type.value, "date": following.date.isoformat()}},
            ))

    if comp.manufacture_date is not None:
        for event in events:
            if event.date.date() < comp.manufacture_date.date():
                issues.append(_date_issue(
                    "Event Predates Manufacture",
                    f"The {event.event_type.value} event on {format_date(event.date)} occurs before "
                    f"the component was manufactured on {format_date(comp.manufacture_date)}.",
                    f"{event.id}:before_manufacture",
                    {"eventId": event.id, "date": event.date.isoformat(),
                     "manufactureDate": comp.manufacture_date.isoformat()},
                ))

    # A part cannot be installed twice without coming off the first aircraft
    last_install: Optional[LifecycleEvent] = None
    for event in events:
        if event.event_type == EventType.INSTALL:
            if last_install is not None:
                issues.append(_date_issue(
                    "Consecutive Installations Without Removal",
                    f"Installed at {last_install.facility} on {format_date(last_install.date)}, then "
                    f"again at {event.facility} on {format_date(event.date)} with no removal in between.",
                    f"{last_install.id}:{event.id}:double_install",
                    {"firstInstall": last_install.id, "secondInstall": event.id},
                ))
            last_install = event
        elif event.event_type == EventType.REMOVE:
            last_install = None

    # Nothing happens to a part after it is retired or scrapped
    terminal = next((e for e in events if e.event_type in TERMINAL_EVENTS), None)
    if terminal is not None:
        for event in events:
            if event.date > terminal.date:
                issues.append(_date_issue(
                    "Activity After Retirement",
                    f"The {event.event_type.value} event on {format_date(event.date)} follows the "
                    f"{terminal.event_type.value} record on {format_date(terminal.date)}.",
                    f"{terminal.id}:{event.id}:after_terminal",
                    {"terminalEventId": terminal.id, "eventId": event.id},
                ))
    return issues


# ---------------------------------------------------------
# Document workflow
# ---------------------------------------------------------

def check_unsigned_documents(ctx: RuleContext) -> List[DetectedIssue]:
    """Generated documents should not sit in draft"""
    issues = []
    cutoff = ctx.now - timedelta(days=ctx.settings.UNSIGNED_DOC_MAX_AGE_DAYS)
    for event in ctx.component.events:
        for doc in event.generated_docs:
            if doc.status != DocumentStatus.DRAFT or doc.created_at is None:
                continue
            if doc.created_at >= cutoff:
                continue
            issues.append(DetectedIssue(
                exception_type=ExceptionType.UNSIGNED_DOCUMENT,
                severity=Severity.INFO,
                title="Unsigned Document: Awaiting Approval",
                description=(
                    f"A generated {doc.doc_type.value} for the {event.event_type.value} event on "
                    f"{format_date(event.date)} has been in draft for more than "
                    f"{ctx.settings.UNSIGNED_DOC_MAX_AGE_DAYS} days."
                ),
                trigger_ref=doc.id,
                evidence={
                    "documentId": doc.id,
                    "docType": doc.doc_type.value,
                    "eventId": event.id,
                    "createdAt": doc.created_at.isoformat(),
                },
            ))
    return issues


Rule = Callable[[RuleContext], List[DetectedIssue]]

RULES: List[Rule] = [
    check_identity_mismatch,
    check_counter_discrepancy,
    check_counter_rate,
    check_missing_birth_certificate,
    check_missing_release_certificate,
    check_documentation_gaps,
    check_date_inconsistency,
    check_unsigned_documents,
    check_missing_facility_certificate,
]


def evaluate_component(
    component: Component,
    now: Optional[datetime] = None,
    settings=default_settings,
    rules: Optional[List[Rule]] = None,
) -> List[DetectedIssue]:
    """
    Run every rule over one component.

    A rule that fails on malformed data is logged and skipped; the remaining
    rules still run.

    Args:
        component: component with events and documents loaded
        now: reference time for age-based rules and in-service trace windows
        settings: thresholds, score weights and rule limits
        rules: rule list override

    Returns:
        DetectedIssue list, most severe first
    """
    now = now or utc_now()
    ctx = RuleContext(
        component=component,
        sequenced=sequence_events(component.events, settings=settings),
        trace=compute_trace(component, now=now, settings=settings),
        now=now,
        settings=settings,
    )

    issues: List[DetectedIssue] = []
    for rule in rules if rules is not None else RULES:
        try:
            issues.extend(rule(ctx))
        except Exception as e:
            logger.error(f"[RuleEngine] Rule {rule.__name__} failed on component {component.id}: {e}")

    issues.sort(key=lambda i: i.severity.rank, reverse=True)
    logger.info(f"[RuleEngine] Component {component.id}: {len(issues)} issue(s) detected")
    return issues
