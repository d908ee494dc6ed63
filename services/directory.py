# -*- coding: utf-8 -*-
"""
Directory Abstraction Layer.

The wizard only needs two remote capabilities from the academic backend:

- list entities of a kind matching a filter
- create an entity of a kind from a payload

Implementations:
- DirectoryApiClient: the REST backend (services/api_client.py)
- MockDirectory: in-memory data for development and tests

Neither offers atomicity across calls.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional


class DirectoryType(Enum):
    """Supported directory backends."""
    HTTP_API = "http_api"
    MOCK = "mock"


class DirectoryClient(ABC):
    """Abstract base class for directory backends."""

    @property
    @abstractmethod
    def directory_type(self) -> DirectoryType:
        """Return the type of this directory."""
        pass

    @abstractmethod
    def list_entities(self, kind: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        List entities of ``kind`` matching ``filters``.

        Only the first page is returned.

        Raises:
            ApiException, NetworkException
        """
        pass

    @abstractmethod
    def create_entity(self, kind: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create one entity and return it; the result always carries ``id``.

        Raises:
            ApiException: server validation failure (field errors available)
            NetworkException: the server could not be reached
        """
        pass


def entity_id(entity: Dict[str, Any]) -> Any:
    """Identifier of a directory entity."""
    return entity.get("id")


def clean_filters(filters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop empty filter values the same way the query-string builder does."""
    if not filters:
        return {}
    return {
        key: value for key, value in filters.items()
        if value is not None and value != ""
    }
