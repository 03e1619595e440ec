"""
Scan Orchestrator: runs the rule engine over one component or the whole fleet.
"""
import asyncio
import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from ..config.settings import settings as default_settings
from ..fetchers.base import BaseComponentFetcher, TransientDataAccessError
from ..infrastructure.utils.time_util import utc_now
from .exception_store import ExceptionStore
from .models.component import Component
from .models.scan import FleetScanSummary, ScanError, ScanResult, count_by_severity
from .models.trace import FacilityStop, TraceCompleteness
from .verification.completeness import compute_trace
from .verification.exception_rules import evaluate_component
from .verification.facility_stops import build_facility_stops

logger = logging.getLogger(__name__)

# (component id, result, error, skipped)
_Outcome = Tuple[str, Optional[ScanResult], Optional[ScanError], bool]


class ScanOrchestrator:
    """
    Scans components for integrity exceptions.

    Components are independent units of work. A fleet scan runs them through a
    bounded worker pool and reduces the results in a single step.
    """

    def __init__(
        self,
        fetcher: BaseComponentFetcher,
        store: Optional[ExceptionStore] = None,
        max_concurrency: Optional[int] = None,
        settings=default_settings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.fetcher = fetcher
        self.store = store if store is not None else ExceptionStore()
        self.max_concurrency = max(1, max_concurrency or settings.SCAN_MAX_CONCURRENCY)
        self.settings = settings
        self._clock = clock
        # Retry policy follows the injected settings
        self._load_component = retry(
            retry=retry_if_exception_type(TransientDataAccessError),
            stop=stop_after_attempt(settings.LOAD_RETRY_ATTEMPTS),
            wait=wait_fixed(settings.LOAD_RETRY_WAIT_SECONDS),
            reraise=True,
        )(self._fetch_component)

    async def _fetch_component(self, component_id: str) -> Component:
        return await self.fetcher.get_component(component_id)

    async def scan_component(self, component_id: str) -> ScanResult:
        """
        Scan one component and record its findings.

        Data-access failures (unknown or unloadable component) propagate to the
        caller; everything after loading degrades locally.

        Args:
            component_id: component ID

        Returns:
            ScanResult with every finding of the component (existing + new)
        """
        component = await self._load_component(component_id)
        now = self._clock()
        issues = evaluate_component(component, now=now, settings=self.settings)
        exceptions, created = self.store.apply_findings(component_id, issues, detected_at=now)
        return ScanResult(component_id=component_id, exceptions=exceptions, newly_detected=created)

    async def scan_fleet(
        self,
        component_ids: Optional[Iterable[str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> FleetScanSummary:
        """
        Scan every component of the fleet.

        A component that fails is reported in `errors` and the scan goes on.
        Once `cancel_event` is set, scans already running finish and scans not
        yet started are skipped.

        Args:
            component_ids: explicit ids; all fleet ids from the fetcher by default
            cancel_event: external cancellation signal

        Returns:
            FleetScanSummary
        """
        if component_ids is None:
            ids = await self.fetcher.list_component_ids()
        else:
            ids = list(component_ids)

        semaphore = asyncio.Semaphore(self.max_concurrency)
        logger.info(f"[Scanner] Fleet scan started: {len(ids)} component(s), concurrency {self.max_concurrency}")

        async def worker(component_id: str) -> _Outcome:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    return component_id, None, None, True
                try:
                    return component_id, await self.scan_component(component_id), None, False
                except Exception as e:
                    logger.warning(f"[Scanner] Component {component_id} failed: {type(e).__name__}: {e}")
                    error = ScanError(component_id=component_id, error_type=type(e).__name__, message=str(e))
                    return component_id, None, error, False

        outcomes: List[_Outcome] = await asyncio.gather(*(worker(cid) for cid in ids))
        summary = self._reduce(outcomes)
        logger.info(
            f"[Scanner] Fleet scan done: {summary.total_exceptions} exception(s) on "
            f"{summary.components_with_exceptions}/{summary.total_components} component(s), "
            f"{len(summary.errors)} error(s), {len(summary.skipped_component_ids)} skipped"
        )
        return summary

    @staticmethod
    def _reduce(outcomes: List[_Outcome]) -> FleetScanSummary:
        summary = FleetScanSummary(total_components=len(outcomes))
        for component_id, result, error, skipped in outcomes:
            if skipped:
                summary.skipped_component_ids.append(component_id)
            elif error is not None:
                summary.errors.append(error)
            elif result is not None:
                if result.exceptions:
                    summary.components_with_exceptions += 1
                summary.exceptions.extend(result.exceptions)
        summary.total_exceptions = len(summary.exceptions)
        summary.by_severity = count_by_severity(summary.exceptions)
        summary.cancelled = bool(summary.skipped_component_ids)
        return summary

    async def compute_trace(self, component_id: str) -> TraceCompleteness:
        component = await self._load_component(component_id)
        return compute_trace(component, now=self._clock(), settings=self.settings)

    async def facility_stops(self, component_id: str) -> List[FacilityStop]:
        component = await self._load_component(component_id)
        trace = compute_trace(component, now=self._clock(), settings=self.settings)
        return build_facility_stops(component.events, trace.gaps, component.status)
