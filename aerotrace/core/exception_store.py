"""
Exception Store: persistence of integrity findings (in-memory).
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from ..infrastructure.utils.time_util import utc_now
from .models.exceptions import DetectedIssue, ExceptionStatus, IntegrityException

logger = logging.getLogger(__name__)

NaturalKey = Tuple[str, str, str]


class ExceptionNotFoundError(KeyError):
    """No exception with the given id"""


class ExceptionStore:
    """
    In-memory store of IntegrityExceptions with upsert on the natural key
    (component_id, exception_type, trigger_ref).

    Attributes:
        _exceptions (Dict[str, IntegrityException]): findings by id
        _by_key (Dict[NaturalKey, str]): natural key -> exception id
        _by_component (Dict[str, List[str]]): component id -> exception ids
    """

    def __init__(self):
        self._exceptions: Dict[str, IntegrityException] = {}
        self._by_key: Dict[NaturalKey, str] = {}
        self._by_component: Dict[str, List[str]] = defaultdict(list)

    def apply_findings(
        self,
        component_id: str,
        issues: Sequence[DetectedIssue],
        detected_at: Optional[datetime] = None,
    ) -> Tuple[List[IntegrityException], int]:
        """
        Record the result of one component scan.

        All changes for the component are prepared first and committed in one
        step, so a scan never leaves partial writes behind.

        - new finding: created as open
        - open/investigating finding seen again: last_detected_at refreshed
        - resolved/dismissed finding seen again: left alone while the condition
          has persisted; re-opened if an earlier scan saw the condition clear
        - finding not seen in this scan: condition_active set to False, status
          untouched

        Args:
            component_id: scanned component
            issues: everything the rule engine reported
            detected_at: scan timestamp

        Returns:
            (all findings of the component, number newly created)
        """
        detected_at = detected_at or utc_now()

        created: List[IntegrityException] = []
        updates: Dict[str, IntegrityException] = {}
        seen_keys = set()

        for issue in issues:
            key = (component_id, issue.exception_type.value, issue.trigger_ref)
            if key in seen_keys:
                continue
            seen_keys.add(key)

            existing_id = self._by_key.get(key)
            if existing_id is None:
                created.append(IntegrityException.from_issue(component_id, issue, detected_at))
                continue

            existing = self._exceptions[existing_id]
            changes = {"last_detected_at": detected_at, "condition_active": True,
                       "severity": issue.severity, "title": issue.title,
                       "description": issue.description, "evidence": issue.evidence}
            if existing.status.is_closed and not existing.condition_active:
                logger.info(f"[ExceptionStore] Condition reappeared, re-opening {existing_id}")
                changes.update({
                    "status": ExceptionStatus.OPEN,
                    "detected_at": detected_at,
                    "resolved_at": None,
                })
            elif existing.status.is_closed:
                # Human decision stands while the condition persists
                changes = {"last_detected_at": detected_at}
            updates[existing_id] = existing.model_copy(update=changes)

        for ex_id in self._by_component.get(component_id, []):
            if ex_id not in updates and self._exceptions[ex_id].condition_active:
                updates[ex_id] = self._exceptions[ex_id].model_copy(update={"condition_active": False})

        # Commit
        self._exceptions.update(updates)
        for ex in created:
            self._exceptions[ex.id] = ex
            self._by_key[ex.natural_key] = ex.id
            self._by_component[component_id].append(ex.id)

        if created:
            logger.info(f"[ExceptionStore] Component {component_id}: {len(created)} new finding(s)")
        return self.list_for_component(component_id), len(created)

    def get(self, exception_id: str) -> Optional[IntegrityException]:
        return self._exceptions.get(exception_id)

    def list_for_component(self, component_id: str) -> List[IntegrityException]:
        """
        All findings of a component, newest first.

        Args:
            component_id: component ID

        Returns:
            IntegrityException list
        """
        found = [self._exceptions[i] for i in self._by_component.get(component_id, [])]
        return sorted(found, key=lambda e: (e.detected_at, e.severity.rank), reverse=True)

    def list_all(self, status: Optional[ExceptionStatus] = None) -> List[IntegrityException]:
        found = list(self._exceptions.values())
        if status is not None:
            found = [e for e in found if e.status == status]
        return found

    def update_status(
        self,
        exception_id: str,
        status: ExceptionStatus,
        resolved_by: Optional[str] = None,
        resolution_notes: Optional[str] = None,
    ) -> IntegrityException:
        """
        Human review of a finding.

        Raises:
            ExceptionNotFoundError: unknown exception id
        """
        existing = self._exceptions.get(exception_id)
        if existing is None:
            raise ExceptionNotFoundError(exception_id)

        status = ExceptionStatus(status)
        updated = existing.model_copy(update={
            "status": status,
            "resolved_by": resolved_by,
            "resolution_notes": resolution_notes,
            "resolved_at": utc_now() if status.is_closed else None,
        })
        self._exceptions[exception_id] = updated
        return updated

    def clear(self) -> None:
        """Empty the store (mainly for tests)"""
        self._exceptions.clear()
        self._by_key.clear()
        self._by_component.clear()
