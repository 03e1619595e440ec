"""
Event Sequencer: chronological ordering and usage-counter checks.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional
from pydantic import BaseModel, Field

from ...config.settings import settings as default_settings
from ...infrastructure.utils.time_util import days_between
from ..models.events import LifecycleEvent

logger = logging.getLogger(__name__)

COUNTERS = ("hours", "cycles")


class CounterRegression(BaseModel):
    """A later event reports a smaller cumulative counter than an earlier one"""

    counter: str = Field(..., description="hours or cycles")
    earlier_event_id: str
    later_event_id: str
    earlier_date: datetime
    later_date: datetime
    earlier_value: float
    later_value: float

    @property
    def delta(self) -> float:
        return self.later_value - self.earlier_value

    @property
    def trigger_ref(self) -> str:
        return f"{self.earlier_event_id}:{self.later_event_id}"


class CounterRateAnomaly(BaseModel):
    """Implied usage rate between two readings is physically implausible"""

    counter: str
    earlier_event_id: str
    later_event_id: str
    earlier_date: datetime
    later_date: datetime
    earlier_value: float
    later_value: float
    days_between: int
    rate_per_day: float

    @property
    def trigger_ref(self) -> str:
        return f"{self.earlier_event_id}:{self.later_event_id}:rate"


class SequencedEvents(BaseModel):
    """Output of the sequencer"""

    events: List[LifecycleEvent] = Field(default_factory=list, description="Dated events, ascending")
    undated: List[LifecycleEvent] = Field(default_factory=list, description="Events without a usable date")
    regressions: List[CounterRegression] = Field(default_factory=list)
    rate_anomalies: List[CounterRateAnomaly] = Field(default_factory=list)

    def regressions_for(self, counter: str) -> List[CounterRegression]:
        return [r for r in self.regressions if r.counter == counter]

    def rate_anomalies_for(self, counter: str) -> List[CounterRateAnomaly]:
        return [r for r in self.rate_anomalies if r.counter == counter]


def _counter_value(event: LifecycleEvent, counter: str) -> Optional[float]:
    return event.hours_at_event if counter == "hours" else event.cycles_at_event


def _max_rate(counter: str, settings) -> float:
    return settings.MAX_HOURS_PER_DAY if counter == "hours" else settings.MAX_CYCLES_PER_DAY


def sequence_events(events: Iterable[LifecycleEvent], settings=default_settings) -> SequencedEvents:
    """
    Order a component's events chronologically and flag counter problems.

    Sorting is stable, so events on the same date keep their record order.
    Nothing is rejected or corrected: regressions are only reported.

    Args:
        events: the component's events in record order
        settings: per-day usage limits for the rate check

    Returns:
        SequencedEvents with the ordered events and flags
    """
    events = list(events)
    dated = [e for e in events if e.date is not None]
    undated = [e for e in events if e.date is None]
    if undated:
        logger.warning(f"[Sequencer] {len(undated)} event(s) without a usable date excluded from sequencing")

    ordered = sorted(dated, key=lambda e: e.date)

    regressions: List[CounterRegression] = []
    anomalies: List[CounterRateAnomaly] = []
    for counter in COUNTERS:
        # Compare each reading with the previous event that carries the same counter
        readings = [(e, _counter_value(e, counter)) for e in ordered]
        readings = [(e, v) for e, v in readings if v is not None]
        for (prev, prev_val), (curr, curr_val) in zip(readings, readings[1:]):
            if curr_val < prev_val:
                regressions.append(CounterRegression(
                    counter=counter,
                    earlier_event_id=prev.id,
                    later_event_id=curr.id,
                    earlier_date=prev.date,
                    later_date=curr.date,
                    earlier_value=prev_val,
                    later_value=curr_val,
                ))
                continue

            elapsed = days_between(prev.date, curr.date)
            if curr_val > prev_val and elapsed > 0:
                rate = (curr_val - prev_val) / elapsed
                if rate > _max_rate(counter, settings):
                    anomalies.append(CounterRateAnomaly(
                        counter=counter,
                        earlier_event_id=prev.id,
                        later_event_id=curr.id,
                        earlier_date=prev.date,
                        later_date=curr.date,
                        earlier_value=prev_val,
                        later_value=curr_val,
                        days_between=elapsed,
                        rate_per_day=round(rate, 1),
                    ))

    if regressions:
        logger.info(f"[Sequencer] {len(regressions)} counter regression(s) flagged")

    return SequencedEvents(
        events=ordered,
        undated=undated,
        regressions=regressions,
        rate_anomalies=anomalies,
    )
