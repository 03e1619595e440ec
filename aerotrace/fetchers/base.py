"""
Data-access interface used by the scanner.
"""
from abc import ABC, abstractmethod
from typing import List
from ..core.models.component import Component


class ComponentNotFoundError(LookupError):
    """The component does not exist in the data store"""


class DataAccessError(Exception):
    """The component exists but could not be loaded"""


class TransientDataAccessError(DataAccessError):
    """The data store is temporarily unavailable; the load may be retried"""


class BaseComponentFetcher(ABC):
    """Loads components with their events, evidence and documents"""

    @abstractmethod
    async def get_component(self, component_id: str) -> Component:
        """
        Load one component with all related records.

        Args:
            component_id: component ID

        Returns:
            Component

        Raises:
            ComponentNotFoundError: unknown id
            DataAccessError: the stored record cannot be loaded
            TransientDataAccessError: the data store is temporarily unavailable
        """
        pass

    @abstractmethod
    async def list_component_ids(self) -> List[str]:
        """IDs of every component in the fleet"""
        pass
