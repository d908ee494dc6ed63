# -*- coding: utf-8 -*-
"""
Mock Directory for Development.

In-memory stand-in for the academic backend with the same list/create
contract. Supports simulated latency and scripted create failures so the
wizard's partial-failure paths can be exercised offline.
"""

import copy
import threading
import time
from typing import Any, Dict, List, Optional

from services.directory import DirectoryClient, DirectoryType, clean_filters
from services.exceptions import ApiException
from utils.logger import get_logger

logger = get_logger(__name__)

# Query parameters that steer pagination rather than filter rows
_PAGING_KEYS = ("page", "page_size", "ordering", "search")


class MockDirectory(DirectoryClient):
    """
    Mock directory for development and testing.

    Features:
    - In-memory storage per entity kind
    - Integer ids allocated per kind
    - Simulated network delay
    - Scripted failures for create calls
    - Call journal for ordering assertions
    """

    def __init__(self, seed: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 simulate_delay: bool = False, delay_ms: int = 200):
        """
        Initialize mock directory.

        Args:
            seed: Initial entities per kind
            simulate_delay: Whether to simulate network latency
            delay_ms: Simulated delay in milliseconds
        """
        self.simulate_delay = simulate_delay
        self.delay_ms = delay_ms
        self._lock = threading.Lock()
        self._entities: Dict[str, List[Dict[str, Any]]] = {}
        self._next_ids: Dict[str, int] = {}
        self._create_failures: Dict[str, List[Exception]] = {}
        self._next_created_ids: Dict[str, List[Any]] = {}
        self.calls: List[tuple] = []

        for kind, items in (seed or {}).items():
            for item in items:
                self.add(kind, item)

    @property
    def directory_type(self) -> DirectoryType:
        return DirectoryType.MOCK

    # ==================== Fixtures ====================

    def add(self, kind: str, entity: Dict[str, Any]) -> Dict[str, Any]:
        """Insert an entity directly (no call is journaled)."""
        with self._lock:
            entity = dict(entity)
            if entity.get("id") is None:
                entity["id"] = self._allocate_id(kind)
            elif isinstance(entity["id"], int):
                self._next_ids[kind] = max(self._next_ids.get(kind, 1), entity["id"] + 1)
            self._entities.setdefault(kind, []).append(entity)
            return entity

    def remove(self, kind: str, entity_id: Any):
        """Delete an entity directly, as if another operator had removed it."""
        with self._lock:
            self._entities[kind] = [
                e for e in self._entities.get(kind, []) if e.get("id") != entity_id
            ]

    def fail_next_create(self, kind: str, error: Exception):
        """Make the next create call for ``kind`` raise ``error``."""
        self._create_failures.setdefault(kind, []).append(error)

    def assign_next_id(self, kind: str, entity_id: Any):
        """Make the next successful create for ``kind`` return ``entity_id``."""
        self._next_created_ids.setdefault(kind, []).append(entity_id)

    def entities(self, kind: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._entities.get(kind, []))

    def create_calls(self, kind: Optional[str] = None) -> List[tuple]:
        return [c for c in self.calls if c[0] == "create" and (kind is None or c[1] == kind)]

    # ==================== Directory contract ====================

    def list_entities(self, kind: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        filters = clean_filters(filters)
        self._delay()
        with self._lock:
            self.calls.append(("list", kind, dict(filters)))
            page_size = filters.get("page_size")
            criteria = {k: v for k, v in filters.items() if k not in _PAGING_KEYS}
            rows = [
                copy.deepcopy(e) for e in self._entities.get(kind, [])
                if all(e.get(k) == v for k, v in criteria.items())
            ]
        if page_size:
            rows = rows[:int(page_size)]
        logger.debug(f"Mock list {kind} {criteria} -> {len(rows)} rows")
        return rows

    def create_entity(self, kind: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._delay()
        with self._lock:
            self.calls.append(("create", kind, copy.deepcopy(payload)))
            failures = self._create_failures.get(kind)
            if failures:
                error = failures.pop(0)
                logger.debug(f"Mock create {kind} failing with {error!r}")
                raise error

            entity = dict(payload)
            queued = self._next_created_ids.get(kind)
            entity["id"] = queued.pop(0) if queued else self._allocate_id(kind)
            self._entities.setdefault(kind, []).append(entity)
        logger.debug(f"Mock create {kind} -> id={entity['id']}")
        return copy.deepcopy(entity)

    # ==================== Internals ====================

    def _allocate_id(self, kind: str) -> int:
        next_id = self._next_ids.get(kind, 1)
        self._next_ids[kind] = next_id + 1
        return next_id

    def _delay(self):
        if self.simulate_delay:
            time.sleep(self.delay_ms / 1000.0)


def validation_error(field_errors: Dict[str, List[str]], status_code: int = 400) -> ApiException:
    """Build the exception the backend's validation failures map to."""
    return ApiException(
        message="Validation failed",
        status_code=status_code,
        response_data=dict(field_errors)
    )
