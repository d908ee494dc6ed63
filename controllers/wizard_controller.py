# -*- coding: utf-8 -*-
"""
Wizard Controller
=================
Drives one resolve-or-create wizard.

The controller owns the WizardState: every mutation goes through it, is
mirrored to the draft store at once and announced with ``state_changed``.
Candidate lists are delegated to the CascadeResolver, navigation to the
StepNavigator and the remote writes to the SubmissionPipeline, which runs
on the task runner.
"""

import copy
from typing import Any, Dict, List, Optional

from PyQt5.QtCore import pyqtSignal

from app.config import Config, RetryPolicy
from controllers.base_controller import BaseController
from controllers.cascade_resolver import CascadeResolver
from services.directory import DirectoryClient
from services.draft_store import DraftConfig, DraftStore
from services.error_mapper import map_exception
from services.exceptions import SubmissionError
from services.task_runner import QtTaskRunner, TaskRunner
from utils.logger import get_logger
from wizards.framework import (
    ResolutionResult,
    StepDescriptor,
    StepMode,
    StepNavigator,
    StepState,
    StepValidationResult,
    SubmissionOutcome,
    SubmissionPipeline,
    WizardDefinition,
    WizardState,
    validate_step,
)
from wizards.framework.wizard_context import is_blank

logger = get_logger(__name__)


class WizardController(BaseController):
    """
    Controller for a multi-step entity-resolution wizard.

    Usage:
        controller = WizardController(definition, get_api_client())
        controller.submission_succeeded.connect(on_done)
        controller.start()
        controller.select_existing("teacher", 7)
        controller.advance()
        ...
        controller.submit()
    """

    # Signals
    step_changed = pyqtSignal(int, int)  # old_index, new_index
    state_changed = pyqtSignal()
    validation_failed = pyqtSignal(object)  # StepValidationResult
    submission_started = pyqtSignal()
    step_resolved = pyqtSignal(str, object)  # step key, ResolutionResult
    step_already_created = pyqtSignal(str, object)  # step key, ResolutionResult
    step_recreated = pyqtSignal(str, object)  # step key, ResolutionResult left behind
    submission_succeeded = pyqtSignal(object)  # composite payload dict
    submission_failed = pyqtSignal(object)  # SubmissionError
    cancelled = pyqtSignal()

    def __init__(self, definition: WizardDefinition, directory: DirectoryClient,
                 draft_store: Optional[DraftStore] = None,
                 runner: Optional[TaskRunner] = None,
                 retry_policy: Optional[str] = None,
                 context_values: Optional[Dict[str, Any]] = None,
                 parent=None):
        super().__init__(parent)
        self.definition = definition
        self.directory = directory
        self.draft_store = draft_store or DraftStore(
            DraftConfig.for_wizard(definition.wizard_id), definition
        )
        self.runner = runner or QtTaskRunner()
        self.retry_policy = RetryPolicy.normalize(retry_policy or Config.SUBMIT_RETRY_POLICY)
        self.context_values = dict(context_values or {})

        self._resolutions: Dict[str, ResolutionResult] = {}
        self._submission_error: Optional[SubmissionError] = None
        self._composite_entity: Optional[Dict[str, Any]] = None
        self._is_submitting = False

        # The draft is read once, before anything can write it
        restored = self.draft_store.load()
        self._restored = restored is not None
        if restored is not None:
            self._state, _ = restored
            self._state.status = "draft"
        else:
            self._state = WizardState.create_default(definition)

        self.navigator = StepNavigator(definition, self._state, self.validate_step_at, self)
        self.navigator.step_changed.connect(self._on_step_changed)
        self.navigator.validation_failed.connect(self.validation_failed.emit)

        self.resolver = CascadeResolver(
            definition, directory, self.runner,
            lambda: self._state, self._clear_selection, self
        )

        logger.info(f"Wizard {definition.wizard_id} ready at step "
                    f"{self._state.current_step_index} (restored={self._restored})")

    # ==================== Accessors ====================

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def current_step_index(self) -> int:
        return self._state.current_step_index

    @property
    def current_step(self) -> StepDescriptor:
        return self.definition.steps[self._state.current_step_index]

    @property
    def resolutions(self) -> Dict[str, ResolutionResult]:
        """Results kept from the last submission attempt."""
        return dict(self._resolutions)

    @property
    def submission_error(self) -> Optional[SubmissionError]:
        return self._submission_error

    @property
    def composite_entity(self) -> Optional[Dict[str, Any]]:
        return self._composite_entity

    @property
    def is_submitting(self) -> bool:
        return self._is_submitting

    @property
    def is_completed(self) -> bool:
        return self._state.status == "completed"

    @property
    def was_restored(self) -> bool:
        """True if the state came from a saved draft."""
        return self._restored

    def step_state(self, step_key: str) -> StepState:
        return self._state.step(step_key)

    def can_go_next(self) -> bool:
        return not self._is_submitting and self.navigator.can_go_next()

    def can_go_previous(self) -> bool:
        return not self._is_submitting and self.navigator.can_go_previous()

    def get_progress_percentage(self) -> float:
        return self.navigator.get_progress_percentage()

    # ==================== Lifecycle ====================

    def start(self):
        """Load lookups and every candidate list that can be fetched."""
        self._log_operation("start", wizard=self.definition.wizard_id)
        self.resolver.load_lookups()
        self.resolver.refresh_all()

    def cancel(self) -> bool:
        """Discard the draft and return to an empty wizard."""
        if self._is_submitting:
            logger.warning("Cannot cancel while a submission is in progress")
            return False

        old_index = self._state.current_step_index
        self.draft_store.clear()
        self._state.reset(self.definition)
        self._resolutions = {}
        self._submission_error = None
        self._composite_entity = None
        self._restored = False
        self._clear_error()
        self.resolver.reset()

        logger.info(f"Wizard {self.definition.wizard_id} cancelled")
        self.state_changed.emit()
        if old_index != 0:
            self.step_changed.emit(old_index, 0)
        self.cancelled.emit()
        self.resolver.refresh_all()
        return True

    # ==================== Mutations ====================

    def set_mode(self, step_key: str, mode: str):
        """Switch a step between using an existing entity and creating one."""
        self._ensure_editable()
        self._entity_step(step_key)
        if mode not in StepMode.ALL:
            raise ValueError(f"Invalid step mode: {mode!r}")

        step = self._state.step(step_key)
        if step.mode == mode:
            return
        before = step.resolved_value()
        step.mode = mode
        logger.debug(f"Step {step_key} mode -> {mode}")
        self._after_mutation(step_key, before)

    def select_existing(self, step_key: str, entity_id: Any) -> bool:
        """
        Select an entity from the step's candidate list.

        Returns:
            False if the id is not in the current list (nothing changes)
        """
        self._ensure_editable()
        self._entity_step(step_key)

        if not is_blank(entity_id):
            if not (self.resolver.is_fresh(step_key) and self.resolver.contains(step_key, entity_id)):
                logger.warning(f"Refusing {step_key} selection {entity_id}: not in current candidates")
                return False
        else:
            entity_id = None

        step = self._state.step(step_key)
        before = step.resolved_value()
        step.mode = StepMode.EXISTING
        step.selected_id = entity_id
        logger.debug(f"Step {step_key} selected {entity_id}")
        self._after_mutation(step_key, before)
        return True

    def set_field(self, step_key: str, name: str, value: Any):
        """Set one create-payload field, or one scalar of a details step."""
        self._ensure_editable()
        descriptor = self.definition.step(step_key)
        if descriptor.field_spec(name) is None:
            raise KeyError(f"Step {step_key} has no field {name}")

        step = self._state.step(step_key)
        before = step.resolved_value()
        step.fields[name] = value
        self._after_mutation(step_key, before)

    def set_scalar(self, name: str, value: Any):
        """Set a wizard-level field wherever its details step declares it."""
        descriptor = self.definition.scalar_step_for(name)
        self.set_field(descriptor.key, name, value)

    def _after_mutation(self, step_key: str, before: Any):
        self._state.touch()
        self._save_draft()
        self.state_changed.emit()
        if self._state.step(step_key).resolved_value() != before:
            self.resolver.on_value_changed(step_key)

    def _clear_selection(self, step_key: str):
        step = self._state.step(step_key)
        step.selected_id = None
        self._state.touch()
        self._save_draft()
        self.state_changed.emit()

    def _ensure_editable(self):
        if self._is_submitting:
            raise RuntimeError("The wizard cannot be edited while a submission is in progress")
        if self.is_completed:
            raise RuntimeError("The wizard has already been submitted")

    def _entity_step(self, step_key: str) -> StepDescriptor:
        descriptor = self.definition.step(step_key)
        if not descriptor.is_entity_step:
            raise ValueError(f"Step {step_key} does not resolve an entity")
        return descriptor

    # ==================== Navigation ====================

    def validate_step_at(self, index: int) -> StepValidationResult:
        descriptor = self.definition.steps[index]
        return validate_step(descriptor, self._state.step(descriptor.key), self._state, self.resolver)

    def validate_current_step(self) -> StepValidationResult:
        return self.validate_step_at(self._state.current_step_index)

    def advance(self) -> bool:
        """Validate the current step and move to the next one."""
        if not self._can_navigate():
            return False
        return self.navigator.next_step()

    def retreat(self) -> bool:
        if not self._can_navigate():
            return False
        return self.navigator.previous_step()

    def jump_to_step(self, index: int) -> bool:
        if not self._can_navigate():
            return False
        return self.navigator.goto_step(index)

    def _can_navigate(self) -> bool:
        # A submitted wizard stays on its last step until cancel() resets it
        return not (self._is_submitting or self.is_completed)

    def _on_step_changed(self, old_index: int, new_index: int):
        self._save_draft()
        self.step_changed.emit(old_index, new_index)

    # ==================== Submission ====================

    def invalid_steps(self) -> List[StepValidationResult]:
        """Validation results of every step that does not pass."""
        results = []
        for index in range(len(self.definition)):
            result = self.validate_step_at(index)
            if not result.is_valid:
                results.append(result)
        return results

    def submit(self) -> bool:
        """
        Start the submission.

        Returns:
            True if the pipeline was started
        """
        if self._is_submitting:
            logger.warning("Submission already in progress")
            return False
        if self.is_completed:
            logger.warning("Wizard already submitted")
            return False
        if not self.navigator.is_last_step():
            logger.warning("Submit is only available on the last step")
            return False

        failures = self.invalid_steps()
        if failures:
            logger.warning(f"Submission blocked: step {failures[0].step_key} is invalid")
            self.validation_failed.emit(failures[0])
            return False

        snapshot = copy.deepcopy(self._state)
        prior = dict(self._resolutions)
        pipeline = SubmissionPipeline(
            self.definition, self.directory,
            retry_policy=self.retry_policy,
            context_values=self.context_values
        )

        self._is_submitting = True
        self._state.status = "submitting"
        self._submission_error = None
        self._begin_operation("submit")
        self.submission_started.emit()
        logger.info(f"Submitting {self.definition.wizard_id} (policy={self.retry_policy}, "
                    f"retained={sorted(prior)})")

        self.runner.run(
            f"submit:{self.definition.wizard_id}",
            lambda: pipeline.run(snapshot, prior),
            self._on_submission_finished,
            lambda error: self._on_submission_crashed(error, prior)
        )
        return True

    def _on_submission_finished(self, outcome: SubmissionOutcome):
        self._is_submitting = False

        for descriptor in self.definition.entity_steps:
            result = outcome.resolutions.get(descriptor.key)
            if result is None:
                continue
            if result.reused:
                self.step_already_created.emit(descriptor.key, result)
                continue
            if result.replaced_id is not None and descriptor.key in self._resolutions:
                self.step_recreated.emit(descriptor.key, self._resolutions[descriptor.key])
            self.step_resolved.emit(descriptor.key, result)

        retained = {} if self.retry_policy == RetryPolicy.RECREATE else dict(self._resolutions)
        retained.update(outcome.resolutions)
        self._resolutions = retained

        if outcome.succeeded:
            self._succeed(outcome)
        else:
            self._fail(outcome.error)

    def _on_submission_crashed(self, error: Exception, prior: Dict[str, ResolutionResult]):
        self._is_submitting = False
        logger.error(f"Submission crashed: {error}", exc_info=error)
        self._fail(SubmissionError(
            message=map_exception(error),
            step_key=None,
            step_index=-1,
            entity_kind=self.definition.composite_kind,
            resolutions=prior,
            cause=error
        ))

    def _succeed(self, outcome: SubmissionOutcome):
        self._state.status = "completed"
        self._composite_entity = outcome.composite_entity
        self.draft_store.clear()
        logger.info(f"Wizard {self.definition.wizard_id} submitted: {outcome.composite_entity}")
        self._clear_error()
        self._finish_operation("submit")
        self.submission_succeeded.emit(outcome.composite_payload)
        self._trigger_callbacks("submitted", outcome.composite_payload)

    def _fail(self, error: SubmissionError):
        self._state.status = "draft"
        self._submission_error = error
        self._save_draft()
        self._finish_operation("submit", error.message)
        self.submission_failed.emit(error)

    # ==================== Persistence ====================

    def _save_draft(self):
        if self.is_completed:
            return
        self.draft_store.save(self._state, self._state.current_step_index)
