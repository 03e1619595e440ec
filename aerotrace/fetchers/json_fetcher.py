"""
JSON fleet fetcher: loads a fleet export file.

Accepted layouts: {"components": [...]} or a bare list of component records.
"""
import json
import logging
from pathlib import Path
from typing import Union

from .base import DataAccessError
from .memory_fetcher import InMemoryComponentFetcher

logger = logging.getLogger(__name__)


class JsonFleetFetcher(InMemoryComponentFetcher):
    """Component records read from a JSON file"""

    def __init__(self, path: Union[Path, str]):
        self.path = Path(path)
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise DataAccessError(f"Cannot read fleet file {self.path}: {e}") from e

        records = data.get("components", []) if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise DataAccessError(f"Fleet file {self.path} has no component list")

        skipped = 0
        valid = []
        for record in records:
            if isinstance(record, dict) and record.get("id"):
                valid.append(record)
            else:
                skipped += 1
        if skipped:
            logger.warning(f"[JsonFleetFetcher] Skipped {skipped} record(s) without an id in {self.path}")

        super().__init__(valid)
        logger.info(f"[JsonFleetFetcher] Loaded {len(valid)} component record(s) from {self.path}")
