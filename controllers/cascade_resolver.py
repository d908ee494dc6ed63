# -*- coding: utf-8 -*-
"""
Cascade Resolver - candidate lists for dependent wizard steps.

Every entity step has a candidate list fetched from the directory with a
filter built from the resolved values of the steps it depends on. When one
of those values changes, the dependent list and selection are cleared at
once and a new fetch is issued.

Responses carry the generation and dependency tuple they were requested
under; anything that no longer matches on arrival is dropped.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from services.directory import DirectoryClient, entity_id
from services.error_mapper import map_exception
from services.task_runner import TaskRunner
from utils.logger import get_logger
from wizards.framework import StepDescriptor, WizardDefinition, WizardState
from wizards.framework.wizard_context import is_blank, same_id

logger = get_logger(__name__)


@dataclass
class CandidateList:
    """Items fetched for one step under one dependency value."""
    step_key: str
    items: List[Dict[str, Any]] = field(default_factory=list)
    dependency: Optional[Tuple[Any, ...]] = None
    generation: int = 0
    failed: bool = False

    def ids(self) -> List[Any]:
        return [entity_id(item) for item in self.items]

    def contains(self, value: Any) -> bool:
        return any(same_id(candidate, value) for candidate in self.ids())

    def find(self, value: Any) -> Optional[Dict[str, Any]]:
        for item in self.items:
            if same_id(entity_id(item), value):
                return item
        return None


class CascadeResolver(QObject):
    """
    Keeps each entity step's candidate list consistent with its dependencies.

    The resolver reads wizard state but never writes it; clearing a stale
    selection goes through ``clear_selection`` so the owner can persist it.

    Usage:
        resolver = CascadeResolver(definition, directory, runner,
                                   lambda: state, controller_clear_selection)
        resolver.refresh_all()
        ...
        resolver.on_value_changed("class")
    """

    # Signals
    candidates_changed = pyqtSignal(str)  # step key
    loading_changed = pyqtSignal(str, bool)  # step key, is loading
    selection_invalidated = pyqtSignal(str, object)  # step key, discarded id
    fetch_failed = pyqtSignal(str, str)  # step key or lookup name, message
    lookups_loaded = pyqtSignal(str)  # lookup name

    def __init__(self, definition: WizardDefinition, directory: DirectoryClient,
                 runner: TaskRunner, state_provider: Callable[[], WizardState],
                 clear_selection: Callable[[str], None], parent=None):
        super().__init__(parent)
        self.definition = definition
        self.directory = directory
        self.runner = runner
        self._state_provider = state_provider
        self._clear_selection = clear_selection

        self._generations: Dict[str, int] = {d.key: 0 for d in definition.entity_steps}
        self._lists: Dict[str, CandidateList] = {}
        self._loading: Dict[str, bool] = {}
        self._lookups: Dict[str, List[Dict[str, Any]]] = {}
        self._lookups_pending: Set[str] = set()

    # ==================== Queries ====================

    def dependency_value(self, step_key: str) -> Optional[Tuple[Any, ...]]:
        """
        Resolved values of the steps ``step_key`` depends on, or None while
        any of them is unresolved (not selected, or being created).
        """
        state = self._state_provider()
        values = []
        for dep_key in self.definition.step(step_key).depends_on:
            value = state.step(dep_key).resolved_value()
            if value is None:
                return None
            values.append(value)
        return tuple(values)

    def is_loading(self, step_key: str) -> bool:
        return self._loading.get(step_key, False)

    def is_fresh(self, step_key: str) -> bool:
        """True when the list was fetched for the current dependency value."""
        current = self._lists.get(step_key)
        if current is None or current.failed or self.is_loading(step_key):
            return False
        return (current.generation == self._generations.get(step_key)
                and current.dependency == self.dependency_value(step_key))

    def candidates(self, step_key: str) -> List[Dict[str, Any]]:
        current = self._lists.get(step_key)
        return list(current.items) if current else []

    def candidate_list(self, step_key: str) -> Optional[CandidateList]:
        return self._lists.get(step_key)

    def contains(self, step_key: str, value: Any) -> bool:
        current = self._lists.get(step_key)
        return current is not None and current.contains(value)

    def generation(self, step_key: str) -> int:
        return self._generations.get(step_key, 0)

    def lookup(self, name: str) -> List[Dict[str, Any]]:
        return list(self._lookups.get(name, []))

    def has_lookup(self, name: str) -> bool:
        return name in self._lookups

    # ==================== Refresh ====================

    def refresh_all(self):
        """Fetch every list whose dependencies are satisfied."""
        for descriptor in self.definition.entity_steps:
            self.refresh(descriptor.key)

    def refresh(self, step_key: str):
        descriptor = self.definition.step(step_key)
        dependency = self.dependency_value(step_key)
        if dependency is None:
            self._generations[step_key] += 1
            self._replace(descriptor.key, [], None)
            self._set_loading(step_key, False)
            return
        self._fetch(descriptor, dependency)

    def on_value_changed(self, step_key: str):
        """
        React to a change of ``step_key``'s resolved value.

        Direct dependents lose their list and selection immediately; clearing
        a selection is itself a change and cascades further down.
        """
        state = self._state_provider()
        for dependent in self.definition.dependents(step_key):
            if not dependent.is_entity_step:
                continue

            self._generations[dependent.key] += 1
            dependency = self.dependency_value(dependent.key)
            self._replace(dependent.key, [], dependency)

            previous = state.step(dependent.key).selected_id
            if not is_blank(previous):
                logger.info(f"{step_key} changed; discarding {dependent.key} selection {previous}")
                self._clear_selection(dependent.key)
                self.selection_invalidated.emit(dependent.key, previous)
            self.on_value_changed(dependent.key)

            if dependency is None:
                self._set_loading(dependent.key, False)
            else:
                self._fetch(dependent, dependency)

    def reset(self):
        """Forget every list; responses still in flight are dropped."""
        for key in self._generations:
            self._generations[key] += 1
            self._set_loading(key, False)
        self._lists.clear()

    # ==================== Lookups ====================

    def load_lookups(self):
        """Load each reference list of the definition once."""
        for name, (kind, filters) in self.definition.lookups.items():
            if name in self._lookups or name in self._lookups_pending:
                continue
            self._lookups_pending.add(name)
            logger.debug(f"Loading lookup {name} ({kind})")
            self.runner.run(
                f"lookup:{name}",
                lambda kind=kind, filters=dict(filters): self.directory.list_entities(kind, filters),
                lambda items, name=name: self._on_lookup_loaded(name, items),
                lambda error, name=name: self._on_lookup_failed(name, error)
            )

    def _on_lookup_loaded(self, name: str, items: List[Dict[str, Any]]):
        self._lookups_pending.discard(name)
        self._lookups[name] = list(items)
        logger.info(f"Lookup {name} loaded: {len(self._lookups[name])} items")
        self.lookups_loaded.emit(name)

    def _on_lookup_failed(self, name: str, error: Exception):
        self._lookups_pending.discard(name)
        logger.error(f"Failed to load lookup {name}: {error}")
        self.fetch_failed.emit(name, map_exception(error))

    # ==================== Fetching ====================

    def _fetch(self, descriptor: StepDescriptor, dependency: Tuple[Any, ...]):
        key = descriptor.key
        self._generations[key] += 1
        generation = self._generations[key]
        filters = descriptor.build_filter(dict(zip(descriptor.depends_on, dependency)))

        logger.debug(f"Fetching {key} candidates (generation {generation}): {filters}")
        self._set_loading(key, True)
        self.runner.run(
            f"candidates:{key}",
            lambda: self.directory.list_entities(descriptor.entity_kind, filters),
            lambda items: self._on_fetched(key, generation, dependency, items),
            lambda error: self._on_fetch_failed(key, generation, dependency, error)
        )

    def _is_current(self, step_key: str, generation: int, dependency: Tuple[Any, ...]) -> bool:
        return (generation == self._generations.get(step_key)
                and dependency == self.dependency_value(step_key))

    def _on_fetched(self, step_key: str, generation: int, dependency: Tuple[Any, ...],
                    items: List[Dict[str, Any]]):
        if not self._is_current(step_key, generation, dependency):
            logger.debug(f"Dropping stale {step_key} candidates (generation {generation})")
            return

        self._replace(step_key, list(items), dependency, generation)
        self._set_loading(step_key, False)
        logger.info(f"{step_key} candidates loaded: {len(items)} items")

        # A selection restored from a draft may no longer exist
        state = self._state_provider()
        selected = state.step(step_key).selected_id
        if not is_blank(selected) and not self.contains(step_key, selected):
            logger.warning(f"Selected {step_key} {selected} is not among the candidates; discarding")
            self._clear_selection(step_key)
            self.selection_invalidated.emit(step_key, selected)
            self.on_value_changed(step_key)

    def _on_fetch_failed(self, step_key: str, generation: int, dependency: Tuple[Any, ...],
                         error: Exception):
        if not self._is_current(step_key, generation, dependency):
            logger.debug(f"Ignoring stale {step_key} fetch failure: {error}")
            return

        logger.error(f"Failed to load {step_key} candidates: {error}")
        self._lists[step_key] = CandidateList(
            step_key=step_key, dependency=dependency, generation=generation, failed=True
        )
        self._set_loading(step_key, False)
        self.candidates_changed.emit(step_key)
        self.fetch_failed.emit(step_key, map_exception(error))

    def _replace(self, step_key: str, items: List[Dict[str, Any]],
                 dependency: Optional[Tuple[Any, ...]], generation: Optional[int] = None):
        self._lists[step_key] = CandidateList(
            step_key=step_key,
            items=items,
            dependency=dependency,
            generation=self._generations[step_key] if generation is None else generation
        )
        self.candidates_changed.emit(step_key)

    def _set_loading(self, step_key: str, loading: bool):
        if self._loading.get(step_key, False) == loading:
            return
        self._loading[step_key] = loading
        self.loading_changed.emit(step_key, loading)
