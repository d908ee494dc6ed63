# -*- coding: utf-8 -*-
"""
Draft persistence for wizards.

A draft is the JSON snapshot of a WizardState plus the current step index,
kept under two keys of the local key/value storage. Drafts live until a
submission succeeds or the operator cancels.
"""

import json
from dataclasses import dataclass
from typing import Optional, Tuple

from repositories.local_storage import KeyValueStorage, SQLiteStorage
from utils.logger import get_logger
from wizards.framework import WizardDefinition, WizardState

logger = get_logger(__name__)


@dataclass(frozen=True)
class DraftConfig:
    """Storage keys of one wizard's draft."""
    state_key: str
    step_key: str

    @classmethod
    def for_wizard(cls, wizard_id: str, namespace: str = "wizard") -> 'DraftConfig':
        return cls(
            state_key=f"{namespace}.{wizard_id}.draft",
            step_key=f"{namespace}.{wizard_id}.step"
        )


class DraftStore:
    """
    Passive mirror of a wizard's state.

    Every save replaces both snapshots entirely; load never raises for bad
    data and falls back to "no draft".
    """

    def __init__(self, config: DraftConfig, definition: WizardDefinition,
                 storage: Optional[KeyValueStorage] = None):
        self.config = config
        self.definition = definition
        self.storage = storage if storage is not None else SQLiteStorage()

    def save(self, state: WizardState, step_index: int) -> bool:
        """Write the whole state and the step index."""
        try:
            snapshot = json.dumps(state.to_dict(), ensure_ascii=False, default=str)
            self.storage.set_item(self.config.state_key, snapshot)
            self.storage.set_item(self.config.step_key, str(int(step_index)))
        except Exception as e:
            logger.error(f"Failed to save draft {self.config.state_key}: {e}", exc_info=True)
            return False
        return True

    def load(self) -> Optional[Tuple[WizardState, int]]:
        """
        Last saved (state, step index), or None if there is no usable draft.
        """
        raw_state = self.storage.get_item(self.config.state_key)
        if raw_state is None:
            return None

        try:
            state = WizardState.from_dict(json.loads(raw_state), self.definition)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Discarding unreadable draft {self.config.state_key}: {e}")
            return None

        if state.status == "completed":
            logger.warning(f"Discarding draft {self.config.state_key} of a submitted wizard")
            self.clear()
            return None

        step_index = self._load_step_index(state)
        state.current_step_index = step_index
        state.visited_steps.add(step_index)
        logger.info(f"Restored draft {self.config.state_key} at step {step_index}")
        return state, step_index

    def _load_step_index(self, state: WizardState) -> int:
        raw_step = self.storage.get_item(self.config.step_key)
        if raw_step is None:
            step_index = state.current_step_index
        else:
            try:
                step_index = int(raw_step)
            except ValueError:
                logger.warning(f"Ignoring unreadable step index {raw_step!r}")
                return 0

        if not 0 <= step_index < len(self.definition):
            logger.warning(f"Ignoring out-of-range step index {step_index}")
            return 0
        return step_index

    def has_draft(self) -> bool:
        return self.storage.get_item(self.config.state_key) is not None

    def clear(self):
        """Remove both snapshots."""
        self.storage.remove_item(self.config.state_key)
        self.storage.remove_item(self.config.step_key)
        logger.info(f"Cleared draft {self.config.state_key}")
