"""
AeroTrace: Fleet Scan Script
============================
Scans every component of a fleet export for integrity exceptions.

Output:
- data/runs/<run>/report.md: fleet report with traces and facility stops.
- data/runs/<run>/exceptions.jsonl: one finding per line.
- fleet_scan.log: detailed trace.
"""

import asyncio
import sys
import logging
from datetime import datetime

# Setup Logging
logging.basicConfig(
    level=logging.INFO,
    format='%(message)s',
    handlers=[
        logging.FileHandler("fleet_scan.log", mode='w', encoding='utf-8'),
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger("AeroTrace")

from aerotrace.config.settings import settings
from aerotrace.core.scanner import ScanOrchestrator
from aerotrace.core.storage import StorageManager
from aerotrace.fetchers import DataAccessError, JsonFleetFetcher


async def run_fleet_scan(fleet_file: str) -> int:
    logger.info(f"🚀 Starting fleet scan | Fleet: {fleet_file}")
    logger.info("==================================================")

    try:
        fetcher = JsonFleetFetcher(fleet_file)
    except DataAccessError as e:
        logger.error(f"❌ {e}")
        return 3

    orchestrator = ScanOrchestrator(fetcher)
    start_time = datetime.now()
    summary = await orchestrator.scan_fleet()

    logger.info("\n--- Summary ---")
    logger.info(f"Components: {summary.total_components}")
    logger.info(f"With exceptions: {summary.components_with_exceptions}")
    for severity, count in summary.by_severity.items():
        logger.info(f"  {severity}: {count}")
    for err in summary.errors:
        logger.warning(f"⚠️  {err.component_id}: {err.error_type}: {err.message}")

    storage = StorageManager(settings.RUNS_DIR)
    run_dir = storage.save_run(
        "fleet",
        started_at=start_time,
        finished_at=datetime.now(),
        exceptions=summary.exceptions,
        config={"fleet_file": fleet_file, "max_concurrency": orchestrator.max_concurrency},
        stats={
            "components": summary.total_components,
            "components_with_exceptions": summary.components_with_exceptions,
            "total_exceptions": summary.total_exceptions,
            "errors": len(summary.errors),
        },
    )
    logger.info(f"\n💾 RESULTS SAVED: {run_dir}")
    return 1 if summary.errors else 0


if __name__ == "__main__":
    fleet = sys.argv[1] if len(sys.argv) > 1 else settings.FLEET_FILE
    sys.exit(asyncio.run(run_fleet_scan(fleet)))
