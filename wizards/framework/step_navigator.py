# -*- coding: utf-8 -*-
"""
Step Navigator - Manages navigation between wizard steps.

Handles:
- Step progression gated by validation
- Unconditional retreat
- Jumps from a step indicator (never past an unvalidated step)
- Progress tracking
"""

from typing import Callable, Optional

from PyQt5.QtCore import QObject, pyqtSignal

from .step_definition import StepDescriptor, StepValidationResult, WizardDefinition
from .wizard_context import WizardState
from utils.logger import get_logger

logger = get_logger(__name__)


class StepNavigator(QObject):
    """
    Tracks the current step of a WizardState.

    The navigator never touches field values; it only moves the index and
    records visited/completed steps.
    """

    # Signals
    step_changed = pyqtSignal(int, int)  # old_index, new_index
    validation_failed = pyqtSignal(object)  # StepValidationResult

    def __init__(self, definition: WizardDefinition, state: WizardState,
                 validate: Callable[[int], StepValidationResult], parent=None):
        """
        Initialize the navigator.

        Args:
            definition: Wizard steps
            state: State whose index is navigated
            validate: Validates the step at an index
        """
        super().__init__(parent)
        self.definition = definition
        self.state = state
        self._validate = validate

    @property
    def current_index(self) -> int:
        return self.state.current_step_index

    def get_current_step(self) -> Optional[StepDescriptor]:
        if 0 <= self.current_index < len(self.definition):
            return self.definition.steps[self.current_index]
        return None

    def get_step_count(self) -> int:
        return len(self.definition)

    def is_last_step(self) -> bool:
        return self.current_index == len(self.definition) - 1

    def can_go_next(self) -> bool:
        return self.current_index < len(self.definition) - 1

    def can_go_previous(self) -> bool:
        return self.current_index > 0

    def can_jump_to(self, index: int) -> bool:
        """Visited steps and the immediate next one are reachable."""
        if index < 0 or index >= len(self.definition):
            return False
        return index in self.state.visited_steps or index <= self.current_index + 1

    def next_step(self) -> bool:
        """Validate the current step and move forward."""
        if not self.can_go_next():
            logger.debug(f"Cannot go next: already at last step ({self.current_index})")
            return False

        if not self._validate_index(self.current_index):
            return False

        return self._navigate_to(self.current_index + 1)

    def previous_step(self) -> bool:
        """Navigate to the previous step without validation."""
        if not self.can_go_previous():
            logger.debug(f"Cannot go previous: already at first step ({self.current_index})")
            return False

        logger.info(f"Navigating back: Step {self.current_index} → {self.current_index - 1}")
        return self._navigate_to(self.current_index - 1)

    def goto_step(self, index: int) -> bool:
        """
        Navigate to a specific step.

        Forward jumps validate every step between the current one and the
        target, stopping at the first failure.
        """
        if not self.can_jump_to(index):
            logger.debug(f"Jump to step {index} refused from step {self.current_index}")
            return False

        if index == self.current_index:
            return True

        if index > self.current_index:
            for position in range(self.current_index, index):
                if not self._validate_index(position):
                    return False

        return self._navigate_to(index)

    def _validate_index(self, index: int) -> bool:
        logger.debug(f"Validating step {index}...")
        result = self._validate(index)
        if not result.is_valid:
            logger.warning(f"Step {index} validation failed: {result.errors}")
            self.validation_failed.emit(result)
            return False
        self.state.mark_step_completed(index)
        return True

    def _navigate_to(self, new_index: int) -> bool:
        if new_index < 0 or new_index >= len(self.definition):
            logger.error(f"Invalid step index: {new_index} (valid range: 0-{len(self.definition) - 1})")
            return False

        old_index = self.current_index
        self.state.current_step_index = new_index
        self.state.visited_steps.add(new_index)
        self.state.touch()

        self.step_changed.emit(old_index, new_index)
        logger.info(f"Navigation complete: Step {old_index} → {new_index}")
        return True

    def reset(self):
        """Reset navigator to first step."""
        self._navigate_to(0)

    def get_progress_percentage(self) -> float:
        """Current progress as percentage (0.0 to 100.0)."""
        if len(self.definition) <= 1:
            return 100.0
        return (self.current_index / (len(self.definition) - 1)) * 100.0

    def get_completed_steps_count(self) -> int:
        return len(self.state.completed_steps)
