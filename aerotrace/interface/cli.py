import argparse
import sys
import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional

from ..config.settings import settings
from ..core.scanner import ScanOrchestrator
from ..core.storage import StorageManager
from ..core.models import FacilityStop, FleetScanSummary, IntegrityException, ScanResult, TraceCompleteness
from ..fetchers import ComponentNotFoundError, DataAccessError, JsonFleetFetcher
from ..infrastructure.utils.time_util import format_date, format_duration

logger = logging.getLogger(__name__)


def _render_exceptions(exceptions: List[IntegrityException]) -> str:
    if not exceptions:
        return "No integrity exceptions.\n\n"
    out = "| Severity | Type | Component | Title | Status |\n"
    out += "|---|---|---|---|---|\n"
    for exc in exceptions:
        out += (
            f"| {exc.severity.value} | {exc.exception_type.value} | {exc.component_id} "
            f"| {exc.title} | {exc.status.value} |\n"
        )
    return out + "\n"


def _render_trace(component_id: str, trace: TraceCompleteness, stops: List[FacilityStop]) -> str:
    report = f"### {component_id}: {trace.score}/100 ({trace.rating.value})\n\n"
    report += f"- **Documented**: {trace.documented_days} of {trace.total_days} days\n"
    report += f"- **Events / documents**: {trace.total_events} / {trace.total_documents}\n"
    report += f"- **Gaps**: {trace.gap_count} ({format_duration(trace.total_gap_days)} undocumented)\n\n"

    for gap in trace.gaps:
        report += (
            f"- [{gap.severity.value}] {format_date(gap.start_date)} to {format_date(gap.end_date)}: "
            f"{format_duration(gap.days)} between {gap.last_event} at {gap.last_facility} "
            f"and {gap.next_event} at {gap.next_facility}\n"
        )
    if trace.gaps:
        report += "\n"

    if stops:
        report += "| # | Facility | Activity | From | To | Trust |\n"
        report += "|---|---|---|---|---|---|\n"
        for i, stop in enumerate(stops, 1):
            current = " (current)" if stop.is_current else ""
            report += (
                f"| {i} | {stop.display_name}{current} | {stop.activity} "
                f"| {format_date(stop.start_date)} | {format_date(stop.end_date)} | {stop.trust.value} |\n"
            )
        report += "\n"
    return report


def _render_report(
    label: str,
    exceptions: List[IntegrityException],
    traces: Dict[str, TraceCompleteness],
    stops: Dict[str, List[FacilityStop]],
    stats: Dict[str, int],
) -> str:
    """Markdown report of one run"""
    report = f"# AeroTrace Integrity Report: {label}\n\n"
    report += f"- **Generated**: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
    for key, value in stats.items():
        report += f"- **{key.replace('_', ' ').capitalize()}**: {value}\n"
    report += "\n"

    report += "## Exceptions\n\n"
    report += _render_exceptions(exceptions)

    if traces:
        report += "## Trace Completeness\n\n"
        for component_id, trace in traces.items():
            report += _render_trace(component_id, trace, stops.get(component_id, []))
    return report


async def _collect_traces(orchestrator: ScanOrchestrator, component_ids: List[str]):
    traces: Dict[str, TraceCompleteness] = {}
    stops: Dict[str, List[FacilityStop]] = {}
    for component_id in component_ids:
        try:
            traces[component_id] = await orchestrator.compute_trace(component_id)
            stops[component_id] = await orchestrator.facility_stops(component_id)
        except (ComponentNotFoundError, DataAccessError) as e:
            logger.warning(f"[CLI] No trace for {component_id}: {e}")
    return traces, stops


def _persist(
    storage: Optional[StorageManager],
    label: str,
    start_time: datetime,
    exceptions: List[IntegrityException],
    traces: Dict[str, TraceCompleteness],
    report_md: str,
    stats: Dict[str, int],
) -> None:
    if storage is None:
        return
    run_dir = storage.save_run(
        label,
        started_at=start_time,
        finished_at=datetime.now(),
        exceptions=exceptions,
        traces=traces,
        report_md=report_md,
        config={
            "gap_thresholds": settings.get_gap_thresholds()._asdict(),
            "score_weights": settings.get_score_weights()._asdict(),
            "max_concurrency": settings.SCAN_MAX_CONCURRENCY,
        },
        stats=stats,
    )
    print(f"💾 Results saved to: {run_dir}")


async def run_scan(orchestrator: ScanOrchestrator, component_id: str, storage: Optional[StorageManager]) -> int:
    start_time = datetime.now()
    try:
        result: ScanResult = await orchestrator.scan_component(component_id)
    except ComponentNotFoundError as e:
        print(f"❌ {e}")
        return 2
    except DataAccessError as e:
        print(f"❌ {e}")
        return 3

    traces, stops = await _collect_traces(orchestrator, [component_id])
    stats = {"components": 1, **result.summary}
    report_md = _render_report(component_id, result.exceptions, traces, stops, stats)
    print(report_md)
    _persist(storage, component_id, start_time, result.exceptions, traces, report_md, stats)
    return 0


async def run_fleet_scan(orchestrator: ScanOrchestrator, storage: Optional[StorageManager]) -> int:
    start_time = datetime.now()
    summary: FleetScanSummary = await orchestrator.scan_fleet()

    scanned = [cid for cid in await orchestrator.fetcher.list_component_ids()
               if cid not in {err.component_id for err in summary.errors}]
    traces, stops = await _collect_traces(orchestrator, scanned)
    stats = {
        "components": summary.total_components,
        "components_with_exceptions": summary.components_with_exceptions,
        "total_exceptions": summary.total_exceptions,
        **summary.by_severity,
        "errors": len(summary.errors),
    }
    report_md = _render_report("fleet", summary.exceptions, traces, stops, stats)
    if summary.errors:
        report_md += "## Scan Errors\n\n"
        for err in summary.errors:
            report_md += f"- **{err.component_id}**: {err.error_type}: {err.message}\n"
    print(report_md)
    _persist(storage, "fleet", start_time, summary.exceptions, traces, report_md, stats)
    return 1 if summary.errors else 0


async def run_trace(orchestrator: ScanOrchestrator, component_id: str) -> int:
    try:
        trace = await orchestrator.compute_trace(component_id)
        stops = await orchestrator.facility_stops(component_id)
    except (ComponentNotFoundError, DataAccessError) as e:
        print(f"❌ {e}")
        return 2
    print(_render_trace(component_id, trace, stops))
    return 0


async def run_command(args: argparse.Namespace) -> int:
    try:
        fetcher = JsonFleetFetcher(args.fleet)
    except DataAccessError as e:
        print(f"❌ {e}")
        return 3

    orchestrator = ScanOrchestrator(fetcher, max_concurrency=args.concurrency)
    storage = None if args.no_save else StorageManager(args.runs_dir)

    if args.command == "scan":
        return await run_scan(orchestrator, args.component_id, storage)
    if args.command == "scan-all":
        return await run_fleet_scan(orchestrator, storage)
    return await run_trace(orchestrator, args.component_id)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="AeroTrace lifecycle integrity scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m aerotrace.interface.cli scan COMP-001
  python -m aerotrace.interface.cli scan-all --fleet data/fleet.json
  python -m aerotrace.interface.cli trace COMP-001 --no-save
        """
    )
    parser.add_argument(
        "--fleet",
        type=str,
        default=settings.FLEET_FILE,
        help="Fleet export file (JSON)"
    )
    parser.add_argument(
        "--runs-dir",
        type=str,
        default=settings.RUNS_DIR,
        help="Directory for run results"
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Print the report without writing a run directory"
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Maximum concurrent component scans"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.LOG_LEVEL,
        help="Logging level"
    )

    sub = parser.add_subparsers(dest="command", required=True)
    scan = sub.add_parser("scan", help="Scan one component for integrity exceptions")
    scan.add_argument("component_id", help="Component ID")
    sub.add_parser("scan-all", help="Scan every component in the fleet")
    trace = sub.add_parser("trace", help="Show trace completeness and facility stops of one component")
    trace.add_argument("component_id", help="Component ID")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Windows console compatibility
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding='utf-8')

    return asyncio.run(run_command(args))


if __name__ == "__main__":
    sys.exit(main())
