"""
In-memory fetcher: backs tests, demos and the JSON fleet loader.
"""
import logging
from typing import Any, Dict, Iterable, List, Union

from pydantic import ValidationError

from ..core.models.component import Component
from .base import BaseComponentFetcher, ComponentNotFoundError, DataAccessError

logger = logging.getLogger(__name__)

ComponentRecord = Union[Component, Dict[str, Any]]


class InMemoryComponentFetcher(BaseComponentFetcher):
    """
    Serves components from a dict.

    Raw records (dicts) are validated when the component is requested, so a
    malformed record only fails its own load.
    """

    def __init__(self, components: Iterable[ComponentRecord] = ()):
        self._records: Dict[str, ComponentRecord] = {}
        for record in components:
            self.add(record)

    def add(self, record: ComponentRecord) -> str:
        component_id = record.id if isinstance(record, Component) else record.get("id")
        if not component_id:
            raise ValueError("Component record has no id")
        self._records[str(component_id)] = record
        return str(component_id)

    async def get_component(self, component_id: str) -> Component:
        record = self._records.get(component_id)
        if record is None:
            raise ComponentNotFoundError(f"Component {component_id} not found")
        if isinstance(record, Component):
            return record
        try:
            return Component.model_validate(record)
        except ValidationError as e:
            logger.warning(f"[MemoryFetcher] Malformed record for component {component_id}")
            raise DataAccessError(f"Component {component_id} record is malformed: {e.error_count()} error(s)") from e

    async def list_component_ids(self) -> List[str]:
        return list(self._records.keys())
