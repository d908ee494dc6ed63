# -*- coding: utf-8 -*-
"""
Wizard Framework - entity-resolution wizards.

Provides the non-visual pieces every resolve-or-create wizard shares:
step definitions, state, validation, navigation and submission.
"""

from .step_definition import (
    DefinitionError,
    FieldSpec,
    StepDescriptor,
    StepMode,
    StepValidationResult,
    WizardDefinition,
)
from .wizard_context import CreateNew, StepState, UseExisting, WizardState
from .step_navigator import StepNavigator
from .submission import ResolutionResult, SubmissionOutcome, SubmissionPipeline
from .validation import validate_step

__all__ = [
    'CreateNew',
    'DefinitionError',
    'FieldSpec',
    'ResolutionResult',
    'StepDescriptor',
    'StepMode',
    'StepNavigator',
    'StepState',
    'StepValidationResult',
    'SubmissionOutcome',
    'SubmissionPipeline',
    'UseExisting',
    'WizardDefinition',
    'WizardState',
    'validate_step',
]
