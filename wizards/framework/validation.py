# -*- coding: utf-8 -*-
"""
Step validation without UI coupling.

Only the active mode's subset of a step is checked: the selection in
"existing" mode, the create-payload fields in "create" mode. Details steps
check their scalar fields. Step-specific rules (password confirmation and
the like) run afterwards through the descriptor's own validator.
"""

import re
from datetime import date
from typing import Any, Optional, Protocol

from .step_definition import FieldSpec, StepDescriptor, StepMode, StepValidationResult
from .wizard_context import StepState, WizardState, is_blank

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class CandidateView(Protocol):
    """What validation needs to know about a step's candidate list."""

    def is_loading(self, step_key: str) -> bool: ...

    def is_fresh(self, step_key: str) -> bool: ...

    def contains(self, step_key: str, entity_id: Any) -> bool: ...


def validate_step(descriptor: StepDescriptor, step_state: StepState,
                  wizard_state: WizardState,
                  candidates: Optional[CandidateView] = None) -> StepValidationResult:
    """
    Validate one step.

    Args:
        descriptor: Step metadata
        step_state: The step's current values
        wizard_state: Whole wizard state (for cross-step rules)
        candidates: Candidate-list view; when given, an existing selection must
            belong to a fresh list

    Returns:
        StepValidationResult with field-level reasons
    """
    result = StepValidationResult.ok(step_key=descriptor.key)

    if descriptor.is_entity_step and step_state.mode == StepMode.EXISTING:
        _validate_selection(descriptor, step_state, candidates, result)
    else:
        for spec in descriptor.fields:
            _validate_field(spec, step_state.fields.get(spec.name), result)

    if result.is_valid and descriptor.validator is not None:
        result.merge(descriptor.validator(descriptor, step_state, wizard_state))

    return result


def _validate_selection(descriptor: StepDescriptor, step_state: StepState,
                        candidates: Optional[CandidateView], result: StepValidationResult):
    label = descriptor.title.lower()
    if is_blank(step_state.selected_id):
        result.add_error(f"Please select an existing {label}", "selected_id")
        return
    if candidates is None:
        return
    if candidates.is_loading(descriptor.key):
        result.add_error(f"The {label} list is still loading", "selected_id")
    elif not candidates.is_fresh(descriptor.key):
        result.add_error(f"The {label} list is out of date; choose again", "selected_id")
    elif not candidates.contains(descriptor.key, step_state.selected_id):
        result.add_error(f"The selected {label} is no longer available", "selected_id")


def _validate_field(spec: FieldSpec, value: Any, result: StepValidationResult):
    if is_blank(value):
        if spec.required:
            result.add_error(f"{spec.label} is required", spec.name)
        return

    if spec.kind == "int":
        if isinstance(value, bool) or not _is_int(value):
            result.add_error(f"{spec.label} must be a whole number", spec.name)
    elif spec.kind == "date":
        if parse_date(value) is None:
            result.add_error(f"{spec.label} must be a date (YYYY-MM-DD)", spec.name)
    elif spec.kind == "choice":
        if spec.choices and value not in spec.choices:
            result.add_error(f"{spec.label} must be one of: {', '.join(spec.choices)}", spec.name)
    elif spec.kind == "email":
        if not _EMAIL_RE.match(str(value)):
            result.add_error(f"{spec.label} is not a valid e-mail address", spec.name)
    elif spec.kind == "bool":
        if not isinstance(value, bool):
            result.add_error(f"{spec.label} must be true or false", spec.name)


def _is_int(value: Any) -> bool:
    try:
        int(value)
    except (TypeError, ValueError):
        return False
    return True


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        return None
