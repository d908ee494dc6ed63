# -*- coding: utf-8 -*-
"""
Class Teacher Wizard - assign a class teacher, creating whatever is missing.

Usage:
    from wizards.class_teacher import create_class_teacher_controller

    controller = create_class_teacher_controller(get_api_client())
    controller.start()
"""

from typing import Any, Dict, Optional

from app.config import Config
from controllers.wizard_controller import WizardController
from repositories.local_storage import KeyValueStorage
from services.directory import DirectoryClient
from services.draft_store import DraftConfig, DraftStore
from services.task_runner import TaskRunner

from .definition import (
    ASSIGNMENT_STEP,
    CLASS_STEP,
    SECTION_STEP,
    TEACHER_STEP,
    WIZARD_ID,
    build_class_teacher_definition,
)


def create_class_teacher_controller(directory: DirectoryClient,
                                    storage: Optional[KeyValueStorage] = None,
                                    runner: Optional[TaskRunner] = None,
                                    retry_policy: Optional[str] = None,
                                    context_values: Optional[Dict[str, Any]] = None,
                                    parent=None) -> WizardController:
    """
    Build a controller for the class-teacher wizard.

    Args:
        directory: Backend used for candidate lists and creates
        storage: Draft storage (defaults to the SQLite file)
        runner: Task runner (defaults to QThread workers)
        retry_policy: RetryPolicy value (defaults to Config)
        context_values: Fields added to every payload (defaults to the
            configured college)
    """
    definition = build_class_teacher_definition()
    draft_store = DraftStore(DraftConfig.for_wizard(WIZARD_ID), definition, storage)
    if context_values is None:
        context_values = {"college": Config.DEFAULT_COLLEGE_ID}
    return WizardController(
        definition,
        directory,
        draft_store=draft_store,
        runner=runner,
        retry_policy=retry_policy,
        context_values=context_values,
        parent=parent
    )


__all__ = [
    'ASSIGNMENT_STEP',
    'CLASS_STEP',
    'SECTION_STEP',
    'TEACHER_STEP',
    'WIZARD_ID',
    'build_class_teacher_definition',
    'create_class_teacher_controller',
]
