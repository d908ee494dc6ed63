# -*- coding: utf-8 -*-
"""
Step Definitions - immutable description of a wizard's steps.

A step either resolves one entity (select existing or create new) or, when
it has no entity kind, collects wizard-level scalar fields for the final link
record. Dependencies between steps form a DAG over strictly earlier steps.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple


class StepMode:
    """Per-step choice between reusing an entity and creating one."""
    EXISTING = "existing"
    CREATE = "create"

    ALL = (EXISTING, CREATE)


@dataclass
class StepValidationResult:
    """Result of step validation."""
    is_valid: bool
    errors: List[str]
    warnings: List[str] = None
    field_errors: Dict[str, List[str]] = None
    step_key: Optional[str] = None

    def __post_init__(self):
        if self.warnings is None:
            self.warnings = []
        if self.field_errors is None:
            self.field_errors = {}

    @classmethod
    def ok(cls, step_key: str = None) -> 'StepValidationResult':
        return cls(is_valid=True, errors=[], step_key=step_key)

    def add_error(self, message: str, field_name: str = None):
        """Add an error message, optionally tied to a field."""
        self.errors.append(message)
        if field_name:
            self.field_errors.setdefault(field_name, []).append(message)
        self.is_valid = False

    def add_warning(self, message: str):
        """Add a warning message."""
        self.warnings.append(message)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def merge(self, other: 'StepValidationResult'):
        """Fold another result's messages into this one."""
        for message in other.errors:
            self.errors.append(message)
        for name, messages in other.field_errors.items():
            self.field_errors.setdefault(name, []).extend(messages)
        self.warnings.extend(other.warnings)
        if not other.is_valid:
            self.is_valid = False


@dataclass(frozen=True)
class FieldSpec:
    """One input of a step: a create-payload field or a wizard scalar."""
    name: str
    label: str
    required: bool = False
    default: Any = None
    kind: str = "text"  # text | int | date | choice | bool | password | email
    choices: Tuple[str, ...] = ()


# validator(descriptor, step_state, wizard_state) -> StepValidationResult
StepValidator = Callable[['StepDescriptor', Any, Any], StepValidationResult]
# payload_builder(fields, wizard_state) -> payload before id injection
PayloadBuilder = Callable[[Dict[str, Any], Any], Dict[str, Any]]
# candidate_filter({dependency step key: resolved id}) -> list filter
CandidateFilter = Callable[[Dict[str, Any]], Dict[str, Any]]


@dataclass(frozen=True)
class StepDescriptor:
    """Immutable per-step metadata."""
    key: str
    title: str
    description: str = ""
    entity_kind: Optional[str] = None
    depends_on: Tuple[str, ...] = ()
    candidate_filter: Optional[CandidateFilter] = None
    fields: Tuple[FieldSpec, ...] = ()
    inject: Mapping[str, str] = field(default_factory=dict)
    payload_builder: Optional[PayloadBuilder] = None
    link_field: Optional[str] = None
    validator: Optional[StepValidator] = None
    default_mode: str = StepMode.EXISTING

    @property
    def is_entity_step(self) -> bool:
        return self.entity_kind is not None

    def field_spec(self, name: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def field_names(self) -> List[str]:
        return [spec.name for spec in self.fields]

    def default_fields(self) -> Dict[str, Any]:
        defaults = {}
        for spec in self.fields:
            value = spec.default() if callable(spec.default) else spec.default
            defaults[spec.name] = value
        return defaults

    def build_filter(self, dependency_values: Dict[str, Any]) -> Dict[str, Any]:
        if self.candidate_filter is None:
            return {}
        return dict(self.candidate_filter(dependency_values))

    def build_payload(self, fields: Dict[str, Any], wizard_state: Any) -> Dict[str, Any]:
        """Create payload for this step, before earlier ids are injected."""
        if self.payload_builder is not None:
            return dict(self.payload_builder(dict(fields), wizard_state))
        return {
            name: value for name, value in fields.items()
            if name in self.field_names() and value is not None and value != ""
        }


class DefinitionError(ValueError):
    """A wizard definition references steps it may not depend on."""


class WizardDefinition:
    """
    Ordered steps plus the composite record that links their results.

    Construction fails if a dependency or injection points at the step
    itself, a later step, or an unknown key.
    """

    def __init__(
        self,
        wizard_id: str,
        title: str,
        steps: Sequence[StepDescriptor],
        composite_kind: str,
        composite_builder: Optional[Callable[[Dict[str, Any], Dict[str, Any]], Dict[str, Any]]] = None,
        lookups: Optional[Dict[str, Tuple[str, Dict[str, Any]]]] = None
    ):
        self.wizard_id = wizard_id
        self.title = title
        self.steps: Tuple[StepDescriptor, ...] = tuple(steps)
        self.composite_kind = composite_kind
        self.composite_builder = composite_builder
        self.lookups: Dict[str, Tuple[str, Dict[str, Any]]] = dict(lookups or {})
        self._index = {step.key: i for i, step in enumerate(self.steps)}

        if not self.steps:
            raise DefinitionError(f"Wizard {wizard_id} has no steps")
        if len(self._index) != len(self.steps):
            raise DefinitionError(f"Wizard {wizard_id} has duplicate step keys")
        self._check_references()

    def _check_references(self):
        for position, step in enumerate(self.steps):
            references = list(step.depends_on) + list(step.inject.values())
            for ref in references:
                ref_position = self._index.get(ref)
                if ref_position is None:
                    raise DefinitionError(f"Step {step.key} references unknown step {ref}")
                if ref_position >= position:
                    raise DefinitionError(
                        f"Step {step.key} may only depend on earlier steps, not {ref}"
                    )
                if not self.steps[ref_position].is_entity_step:
                    raise DefinitionError(f"Step {step.key} depends on non-entity step {ref}")

    def __len__(self):
        return len(self.steps)

    def step(self, key: str) -> StepDescriptor:
        try:
            return self.steps[self._index[key]]
        except KeyError:
            raise KeyError(f"Unknown step: {key}")

    def index_of(self, key: str) -> int:
        return self._index[key]

    def has_step(self, key: str) -> bool:
        return key in self._index

    @property
    def entity_steps(self) -> List[StepDescriptor]:
        return [s for s in self.steps if s.is_entity_step]

    @property
    def detail_steps(self) -> List[StepDescriptor]:
        return [s for s in self.steps if not s.is_entity_step]

    def dependents(self, key: str) -> List[StepDescriptor]:
        """Steps whose candidate list depends directly on ``key``."""
        return [s for s in self.steps if key in s.depends_on]

    def scalar_step_for(self, field_name: str) -> StepDescriptor:
        for step in self.detail_steps:
            if step.field_spec(field_name) is not None:
                return step
        raise KeyError(f"No details step declares field {field_name}")
