"""Source connectors for discovering provider records."""

from .base import RegistryConnector, RegistryError
from .npi import NPIRegistryConnector
from .web_search import DuckDuckGoConnector
from .mock import MockRegistryConnector

__all__ = [
    "RegistryConnector",
    "RegistryError",
    "NPIRegistryConnector",
    "DuckDuckGoConnector",
    "MockRegistryConnector",
]
