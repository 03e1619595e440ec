"""
Tests for StorageManager
"""
import json
from datetime import datetime

import pytest

from aerotrace.core.models import (
    DetectedIssue,
    ExceptionType,
    IntegrityException,
    Severity,
    TraceCompleteness,
)
from aerotrace.core.storage import StorageManager, run_slug

STARTED = datetime(2024, 6, 1, 8)
FINISHED = datetime(2024, 6, 1, 8, 1)


def _exception(component_id, exception_type, severity):
    issue = DetectedIssue(
        exception_type=exception_type,
        severity=severity,
        title=exception_type.value,
        description="",
        trigger_ref="component",
    )
    return IntegrityException.from_issue(component_id, issue, STARTED)


@pytest.mark.parametrize(
    "label, slug",
    [
        ("Fleet Scan: A320/Hydraulics", "fleet-scan-a320-hydraulics"),
        ("C1", "c1"),
        ("???", "scan"),
    ],
)
def test_run_slug(label, slug):
    assert run_slug(label) == slug


class TestStorageManager:

    @pytest.fixture
    def storage(self, tmp_path):
        return StorageManager(tmp_path / "runs")

    def test_save_run(self, storage):
        exceptions = [
            _exception("C2", ExceptionType.UNSIGNED_DOCUMENT, Severity.INFO),
            _exception("C1", ExceptionType.MISSING_RELEASE_CERTIFICATE, Severity.WARNING),
            _exception("C1", ExceptionType.MISSING_BIRTH_CERTIFICATE, Severity.CRITICAL),
        ]

        run_dir = storage.save_run(
            "Fleet Scan",
            started_at=STARTED,
            finished_at=FINISHED,
            exceptions=exceptions,
            traces={"C3": TraceCompleteness.empty(total_events=0)},
            report_md="# Report\n",
            config={"max_concurrency": 4},
            stats={"total": 3},
        )

        assert run_dir.parent == storage.base_dir
        assert run_dir.name.startswith("2024-06-01_08-00-00_fleet-scan_")

        meta = storage.load_meta(run_dir)
        assert meta.run_id == run_dir.name
        assert meta.component_ids == ["C1", "C2", "C3"]
        assert meta.exceptions_by_severity == {"critical": 1, "warning": 1, "info": 1}
        assert meta.stats == {"total": 3}

        loaded = storage.load_exceptions(run_dir)
        assert [(e.component_id, e.severity) for e in loaded] == [
            ("C1", Severity.CRITICAL),
            ("C1", Severity.WARNING),
            ("C2", Severity.INFO),
        ]
        assert [e.id for e in loaded] == [exceptions[2].id, exceptions[1].id, exceptions[0].id]

        traces = json.loads((run_dir / "traces.json").read_text(encoding="utf-8"))
        assert traces["C3"]["rating"] == "poor"
        assert (run_dir / "report.md").read_text(encoding="utf-8") == "# Report\n"

    def test_minimal_run(self, storage):
        run_dir = storage.save_run("C1", started_at=STARTED, finished_at=FINISHED, exceptions=[])

        assert storage.load_exceptions(run_dir) == []
        assert not (run_dir / "traces.json").exists()
        assert not (run_dir / "report.md").exists()
        assert storage.load_meta(run_dir).exceptions_by_severity == {"critical": 0, "warning": 0, "info": 0}

    def test_each_run_gets_its_own_directory(self, storage):
        first = storage.save_run("C1", started_at=STARTED, finished_at=FINISHED, exceptions=[])
        second = storage.save_run("C1", started_at=STARTED, finished_at=FINISHED, exceptions=[])

        assert first != second
