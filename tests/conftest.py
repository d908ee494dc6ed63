# -*- coding: utf-8 -*-
"""
Shared fixtures for the wizard tests.
"""

import os
from typing import Any, Callable, List

import pytest

# Run Qt headless when no display is available.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from repositories.local_storage import MemoryStorage
from services.mock_directory import MockDirectory
from services.task_runner import ImmediateTaskRunner, TaskRunner
from wizards.class_teacher import build_class_teacher_definition, create_class_teacher_controller
from wizards.framework import FieldSpec, StepDescriptor, StepMode, WizardDefinition


class DeferredTask:
    """A task held back until the test decides to finish it."""

    def __init__(self, name: str, func: Callable[[], Any], on_success, on_error):
        self.name = name
        self.func = func
        self.on_success = on_success
        self.on_error = on_error

    def __repr__(self):
        return f"DeferredTask({self.name!r})"


class DeferredTaskRunner(TaskRunner):
    """Queues tasks; tests complete them in any order."""

    def __init__(self):
        self.tasks: List[DeferredTask] = []

    def run(self, name, func, on_success, on_error):
        self.tasks.append(DeferredTask(name, func, on_success, on_error))

    def pending(self, prefix: str = "") -> List[DeferredTask]:
        return [t for t in self.tasks if t.name.startswith(prefix)]

    def complete(self, task: DeferredTask):
        """Run one queued task and deliver its result."""
        self.tasks.remove(task)
        try:
            result = task.func()
        except Exception as e:
            task.on_error(e)
            return
        task.on_success(result)

    def complete_all(self):
        while self.tasks:
            self.complete(self.tasks[0])


def seeded_directory() -> MockDirectory:
    """Directory with two teachers, two classes and a section for each class."""
    return MockDirectory(seed={
        "users": [
            {"id": "teacher#7", "username": "rkhan", "user_type": "teacher", "is_active": True},
            {"id": "teacher#8", "username": "mlopez", "user_type": "teacher", "is_active": True},
            {"id": "student#1", "username": "pupil", "user_type": "student", "is_active": True},
        ],
        "classes": [
            {"id": 11, "name": "BSc 2023", "is_active": True},
            {"id": 12, "name": "MSc 2023", "is_active": True},
        ],
        "sections": [
            {"id": 21, "class_obj": 11, "name": "A", "is_active": True},
            {"id": 22, "class_obj": 12, "name": "A", "is_active": True},
            {"id": 23, "class_obj": 12, "name": "B", "is_active": True},
        ],
        "programs": [
            {"id": 3, "name": "BCA", "is_active": True},
        ],
        "academic_sessions": [
            {"id": 9, "name": "2024-2025"},
        ],
    })


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def directory():
    return seeded_directory()


@pytest.fixture
def deferred_runner():
    return DeferredTaskRunner()


@pytest.fixture
def definition():
    return build_class_teacher_definition()


@pytest.fixture
def make_controller(qapp, directory, storage):
    """Factory for class-teacher controllers sharing one storage."""
    created = []

    def factory(runner=None, retry_policy=None, context_values=None, start=True):
        controller = create_class_teacher_controller(
            directory,
            storage=storage,
            runner=runner or ImmediateTaskRunner(),
            retry_policy=retry_policy,
            context_values=context_values if context_values is not None else {}
        )
        if start:
            controller.start()
        created.append(controller)
        return controller

    yield factory

    for controller in created:
        controller.deleteLater()


@pytest.fixture
def controller(make_controller):
    return make_controller()


@pytest.fixture
def chain_definition():
    """Four entity steps, each created under the previous one."""

    def step(key, kind, parent=None):
        return StepDescriptor(
            key=key,
            title=key.capitalize(),
            entity_kind=kind,
            depends_on=(parent,) if parent else (),
            fields=(FieldSpec("name", "Name", required=True),),
            inject={"parent": parent} if parent else {},
            link_field=key,
            default_mode=StepMode.CREATE,
        )

    return WizardDefinition(
        wizard_id="campus_desk",
        title="Campus desk",
        steps=[
            step("campus", "campuses"),
            step("building", "buildings", "campus"),
            step("room", "rooms", "building"),
            step("desk", "desks", "room"),
        ],
        composite_kind="desk_assignments",
    )
