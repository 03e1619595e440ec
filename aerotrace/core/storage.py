"""
Storage Manager: file-based archive of scan runs.

Each run is one directory under the runs dir:
    meta.json         RunMeta: when, with which settings, what was found
    exceptions.jsonl  one IntegrityException per line, by component then severity
    traces.json       TraceCompleteness per component
    report.md         the rendered report
"""
import json
import logging
import re
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, Field

from .models import IntegrityException, TraceCompleteness
from .models.scan import count_by_severity

logger = logging.getLogger(__name__)

# storage.py lives in aerotrace/core/
PROJECT_ROOT = Path(__file__).parent.parent.parent

RUN_VERSION = "0.1.0"


class RunMeta(BaseModel):
    """Summary record of one archived scan run"""

    run_id: str
    label: str
    version: str = RUN_VERSION
    started_at: datetime
    finished_at: datetime
    component_ids: List[str] = Field(default_factory=list, description="Components with findings or traces")
    exceptions_by_severity: Dict[str, int] = Field(default_factory=dict)
    config: Dict[str, Any] = Field(default_factory=dict)
    stats: Dict[str, Any] = Field(default_factory=dict)


def run_slug(label: str) -> str:
    """Filesystem-safe form of a run label"""
    slug = re.sub(r"[^a-z0-9_]+", "-", label.strip().lower()).strip("-")
    return slug or "scan"


class StorageManager:
    def __init__(self, base_dir: Union[Path, str] = "data/runs"):
        # Relative string paths are resolved against the project root
        if isinstance(base_dir, str) and not Path(base_dir).is_absolute():
            base_dir = PROJECT_ROOT / base_dir
        self.base_dir = Path(base_dir)

    def _new_run_dir(self, label: str, started_at: datetime) -> Path:
        run_id = f"{started_at:%Y-%m-%d_%H-%M-%S}_{run_slug(label)}_{uuid.uuid4().hex[:6]}"
        run_dir = self.base_dir / run_id
        run_dir.mkdir(parents=True, exist_ok=False)
        return run_dir

    def save_run(
        self,
        label: str,
        *,
        started_at: datetime,
        finished_at: datetime,
        exceptions: Iterable[IntegrityException],
        traces: Optional[Mapping[str, TraceCompleteness]] = None,
        report_md: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        stats: Optional[Dict[str, Any]] = None,
    ) -> Path:
        """
        Archive one scan run.

        Args:
            label: component id or "fleet"; part of the run directory name
            started_at: scan start
            finished_at: scan end
            exceptions: findings to archive
            traces: completeness per component id
            report_md: rendered report
            config: settings the scan ran with
            stats: caller-defined counters

        Returns:
            The run directory
        """
        exceptions = sorted(exceptions, key=lambda e: (e.component_id, -e.severity.rank, e.exception_type.value))
        traces = dict(traces or {})
        run_dir = self._new_run_dir(label, started_at)

        meta = RunMeta(
            run_id=run_dir.name,
            label=label,
            started_at=started_at,
            finished_at=finished_at,
            component_ids=sorted({e.component_id for e in exceptions} | set(traces)),
            exceptions_by_severity=count_by_severity(exceptions),
            config=config or {},
            stats=stats or {},
        )
        (run_dir / "meta.json").write_text(meta.model_dump_json(indent=2), encoding="utf-8")

        with (run_dir / "exceptions.jsonl").open("w", encoding="utf-8") as f:
            for exc in exceptions:
                f.write(exc.model_dump_json() + "\n")

        if traces:
            data = {cid: trace.model_dump(mode="json") for cid, trace in traces.items()}
            with (run_dir / "traces.json").open("w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)

        if report_md is not None:
            (run_dir / "report.md").write_text(report_md, encoding="utf-8")

        logger.info(f"[Storage] Run {run_dir.name} saved: {len(exceptions)} exception(s)")
        return run_dir

    def load_meta(self, run_dir: Path) -> RunMeta:
        return RunMeta.model_validate_json((run_dir / "meta.json").read_text(encoding="utf-8"))

    def load_exceptions(self, run_dir: Path) -> List[IntegrityException]:
        """Findings archived with a run, in file order"""
        path = run_dir / "exceptions.jsonl"
        with path.open(encoding="utf-8") as f:
            return [IntegrityException.model_validate_json(line) for line in f if line.strip()]
