"""
Fetchers package
"""
from .base import BaseComponentFetcher, ComponentNotFoundError, DataAccessError, TransientDataAccessError
from .memory_fetcher import InMemoryComponentFetcher
from .json_fetcher import JsonFleetFetcher

__all__ = [
    "BaseComponentFetcher",
    "ComponentNotFoundError",
    "DataAccessError",
    "InMemoryComponentFetcher",
    "JsonFleetFetcher",
    "TransientDataAccessError",
]
