# -*- coding: utf-8 -*-
"""
Wizard Context - mutable state of one wizard run.

Every step keeps both its "existing" selection and its "create" fields so
toggling the mode never loses what the operator typed. Which of the two is
authoritative is decided by ``mode`` and read only through
``StepState.resolution_input()``.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Union

from .step_definition import StepDescriptor, StepMode, WizardDefinition


@dataclass(frozen=True)
class UseExisting:
    """Resolution input: reuse the selected entity."""
    entity_id: Any


@dataclass(frozen=True)
class CreateNew:
    """Resolution input: create an entity from these fields."""
    fields: Dict[str, Any]


ResolutionInput = Union[UseExisting, CreateNew]


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def same_id(left: Any, right: Any) -> bool:
    """Ids restored from JSON may come back as str where the API sent int."""
    if left is None or right is None:
        return False
    return left == right or str(left) == str(right)


class StepState:
    """State of one step."""

    def __init__(self, mode: str = StepMode.EXISTING, selected_id: Any = None,
                 fields: Optional[Dict[str, Any]] = None):
        if mode not in StepMode.ALL:
            raise ValueError(f"Invalid step mode: {mode!r}")
        self.mode = mode
        self.selected_id = selected_id
        self.fields: Dict[str, Any] = dict(fields or {})

    @classmethod
    def for_descriptor(cls, descriptor: StepDescriptor) -> 'StepState':
        return cls(mode=descriptor.default_mode, fields=descriptor.default_fields())

    def resolution_input(self) -> ResolutionInput:
        if self.mode == StepMode.EXISTING:
            return UseExisting(self.selected_id)
        return CreateNew(dict(self.fields))

    def resolved_value(self) -> Any:
        """Identifier dependents can query by; None until one is known."""
        if self.mode == StepMode.EXISTING and not is_blank(self.selected_id):
            return self.selected_id
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "selected_id": self.selected_id,
            "fields": dict(self.fields),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], descriptor: StepDescriptor) -> 'StepState':
        if not isinstance(data, dict):
            raise TypeError(f"Step {descriptor.key}: expected object, got {type(data).__name__}")
        fields = data.get("fields", {})
        if not isinstance(fields, dict):
            raise TypeError(f"Step {descriptor.key}: fields must be an object")

        merged = descriptor.default_fields()
        for name, value in fields.items():
            if name in merged:
                merged[name] = value
        return cls(
            mode=data.get("mode", descriptor.default_mode),
            selected_id=data.get("selected_id"),
            fields=merged
        )

    def __eq__(self, other):
        if not isinstance(other, StepState):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"StepState(mode={self.mode!r}, selected_id={self.selected_id!r})"


class WizardState:
    """
    All fields of all steps plus navigation progress.

    Owned by the wizard controller; the draft store only mirrors it.
    """

    def __init__(self, wizard_id: str, steps: Dict[str, StepState]):
        self.wizard_id = wizard_id
        self.session_id: str = str(uuid.uuid4())
        self.status: str = "draft"  # draft, submitting, completed
        self.created_at: datetime = datetime.now()
        self.updated_at: datetime = datetime.now()
        self.current_step_index: int = 0
        self.completed_steps: Set[int] = set()
        self.visited_steps: Set[int] = {0}
        self.steps: Dict[str, StepState] = steps

    @classmethod
    def create_default(cls, definition: WizardDefinition) -> 'WizardState':
        return cls(
            wizard_id=definition.wizard_id,
            steps={d.key: StepState.for_descriptor(d) for d in definition.steps}
        )

    def reset(self, definition: WizardDefinition):
        """Return to the default state in place."""
        fresh = WizardState.create_default(definition)
        self.__dict__.update(fresh.__dict__)

    def step(self, key: str) -> StepState:
        return self.steps[key]

    def touch(self):
        self.updated_at = datetime.now()

    def mark_step_completed(self, step_index: int):
        self.completed_steps.add(step_index)
        self.touch()

    def is_step_completed(self, step_index: int) -> bool:
        return step_index in self.completed_steps

    def scalars(self, definition: WizardDefinition) -> Dict[str, Any]:
        """Wizard-level fields held by the details steps."""
        values: Dict[str, Any] = {}
        for descriptor in definition.detail_steps:
            values.update(self.steps[descriptor.key].fields)
        return values

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wizard_id": self.wizard_id,
            "session_id": self.session_id,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "current_step_index": self.current_step_index,
            "completed_steps": sorted(self.completed_steps),
            "visited_steps": sorted(self.visited_steps),
            "steps": {key: state.to_dict() for key, state in self.steps.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], definition: WizardDefinition) -> 'WizardState':
        """
        Restore a state saved by ``to_dict``.

        Raises:
            TypeError/ValueError/KeyError: data is not a snapshot of this wizard
        """
        if not isinstance(data, dict):
            raise TypeError(f"Expected object, got {type(data).__name__}")
        if data.get("wizard_id") != definition.wizard_id:
            raise ValueError(f"Snapshot belongs to wizard {data.get('wizard_id')!r}")
        raw_steps = data["steps"]
        if not isinstance(raw_steps, dict):
            raise TypeError("steps must be an object")

        steps = {}
        for descriptor in definition.steps:
            raw = raw_steps.get(descriptor.key)
            steps[descriptor.key] = (
                StepState.from_dict(raw, descriptor) if raw is not None
                else StepState.for_descriptor(descriptor)
            )

        state = cls(wizard_id=definition.wizard_id, steps=steps)
        state.session_id = data.get("session_id", state.session_id)
        state.status = data.get("status", "draft")
        state.current_step_index = int(data.get("current_step_index", 0))
        state.completed_steps = set(_int_list(data.get("completed_steps", [])))
        state.visited_steps = set(_int_list(data.get("visited_steps", [0]))) or {0}
        if "created_at" in data:
            state.created_at = datetime.fromisoformat(data["created_at"])
        if "updated_at" in data:
            state.updated_at = datetime.fromisoformat(data["updated_at"])
        return state

    def __eq__(self, other):
        if not isinstance(other, WizardState):
            return NotImplemented
        return self.to_dict() == other.to_dict()


def _int_list(values: Any) -> List[int]:
    if not isinstance(values, list):
        raise TypeError("expected a list of step indices")
    return [int(v) for v in values]
