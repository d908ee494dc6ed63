# -*- coding: utf-8 -*-
"""
Tests for the Wizard Controller driving the class-teacher wizard.

Tests cover:
- Step navigation and validation gating
- Draft mirroring and restore
- Successful submission (literal scenario)
- Partial failure and retry policies
- Cancel
"""

import json

import pytest

from app.config import RetryPolicy
from services.draft_store import DraftConfig
from services.mock_directory import validation_error
from services.task_runner import QtTaskRunner
from wizards.class_teacher import WIZARD_ID
from wizards.framework import StepMode

DRAFT_KEYS = DraftConfig.for_wizard(WIZARD_ID)

EXPECTED_ASSIGNMENT = {
    "class_obj": 101,
    "section": 55,
    "teacher": "teacher#7",
    "academic_session": 9,
    "assigned_from": "2025-01-01",
}


def fill_literal_scenario(controller, directory):
    """Existing teacher, new class, new section, assignment details."""
    directory.assign_next_id("classes", 101)
    directory.assign_next_id("sections", 55)

    assert controller.select_existing("teacher", "teacher#7")
    assert controller.advance()

    controller.set_mode("class", StepMode.CREATE)
    controller.set_field("class", "program", 3)
    controller.set_field("class", "name", "BCA 2024")
    assert controller.advance()

    controller.set_mode("section", StepMode.CREATE)
    controller.set_field("section", "name", "Section A")
    assert controller.advance()

    controller.set_scalar("academic_session", 9)
    controller.set_scalar("assigned_from", "2025-01-01")


def record(signal):
    received = []
    signal.connect(lambda *args: received.append(args))
    return received


class TestNavigation:
    """Test advance/retreat/jump gating."""

    def test_starts_on_first_step(self, controller):
        assert controller.current_step_index == 0
        assert controller.current_step.key == "teacher"
        assert controller.can_go_next()
        assert not controller.can_go_previous()

    def test_advance_requires_selection(self, controller):
        """Existing mode without a selection does not advance."""
        failures = record(controller.validation_failed)

        assert controller.advance() is False

        assert controller.current_step_index == 0
        assert len(failures) == 1
        result = failures[0][0]
        assert "selected_id" in result.field_errors

    def test_advance_with_selection(self, controller):
        changes = record(controller.step_changed)

        assert controller.select_existing("teacher", "teacher#8")
        assert controller.advance()

        assert controller.current_step_index == 1
        assert changes == [(0, 1)]
        assert controller.state.is_step_completed(0)

    def test_selection_outside_candidates_refused(self, controller):
        """Students are not teacher candidates."""
        assert controller.select_existing("teacher", "student#1") is False
        assert controller.step_state("teacher").selected_id is None

    def test_retreat_keeps_values(self, controller):
        controller.select_existing("teacher", "teacher#7")
        controller.advance()
        controller.set_mode("class", StepMode.CREATE)
        controller.set_field("class", "name", "BCA 2024")

        assert controller.retreat()

        assert controller.current_step_index == 0
        assert controller.step_state("teacher").selected_id == "teacher#7"
        assert controller.step_state("class").fields["name"] == "BCA 2024"

    def test_retreat_on_first_step(self, controller):
        assert controller.retreat() is False

    def test_jump_forward_past_next_refused(self, controller):
        controller.select_existing("teacher", "teacher#7")

        assert controller.jump_to_step(2) is False
        assert controller.current_step_index == 0

    def test_jump_forward_validates_intermediate_steps(self, controller):
        """Jumping back then forward again re-checks the skipped steps."""
        controller.select_existing("teacher", "teacher#7")
        controller.advance()
        controller.select_existing("class", 11)
        controller.advance()
        assert controller.current_step_index == 2

        assert controller.jump_to_step(0)
        controller.set_mode("class", StepMode.CREATE)

        # Class step is now in create mode without a name
        assert controller.jump_to_step(2) is False
        assert controller.current_step_index == 0

    def test_jump_backward_always_allowed(self, controller):
        controller.select_existing("teacher", "teacher#7")
        controller.advance()

        assert controller.jump_to_step(0)
        assert controller.current_step_index == 0

    def test_create_teacher_rules(self, controller):
        controller.set_mode("teacher", StepMode.CREATE)
        for name, value in {
            "username": "ab",
            "password": "short",
            "confirm_password": "other",
            "email": "ab@example.com",
            "first_name": "Amal",
            "last_name": "Bashir",
        }.items():
            controller.set_field("teacher", name, value)
        failures = record(controller.validation_failed)

        assert controller.advance() is False

        field_errors = failures[0][0].field_errors
        assert set(field_errors) == {"username", "password", "confirm_password"}

    def test_progress(self, controller):
        assert controller.get_progress_percentage() == 0.0
        controller.select_existing("teacher", "teacher#7")
        controller.advance()
        assert controller.get_progress_percentage() == pytest.approx(100.0 / 3)


class TestDraftMirroring:
    """Test that every mutation is persisted and restored."""

    def test_mutation_saves_draft(self, controller, storage):
        controller.set_mode("class", StepMode.CREATE)
        controller.set_field("class", "name", "BCA 2024")

        snapshot = json.loads(storage.get_item(DRAFT_KEYS.state_key))
        assert snapshot["steps"]["class"]["mode"] == "create"
        assert snapshot["steps"]["class"]["fields"]["name"] == "BCA 2024"

    def test_step_index_saved_on_advance(self, controller, storage):
        controller.select_existing("teacher", "teacher#7")
        controller.advance()

        assert storage.get_item(DRAFT_KEYS.step_key) == "1"

    def test_restore_from_draft(self, make_controller):
        first = make_controller()
        first.select_existing("teacher", "teacher#7")
        first.advance()
        first.set_mode("class", StepMode.CREATE)
        first.set_field("class", "name", "BCA 2024")

        second = make_controller()

        assert second.was_restored
        assert second.current_step_index == 1
        assert second.state == first.state
        assert second.step_state("teacher").selected_id == "teacher#7"

    def test_corrupt_draft_gives_default_state(self, make_controller, storage):
        storage.set_item(DRAFT_KEYS.state_key, "{not json")
        storage.set_item(DRAFT_KEYS.step_key, "3")

        controller = make_controller()

        assert not controller.was_restored
        assert controller.current_step_index == 0
        assert controller.step_state("teacher").selected_id is None

    def test_mode_toggle_keeps_both_values(self, controller):
        controller.select_existing("class", 11)
        controller.set_mode("class", StepMode.CREATE)
        controller.set_field("class", "name", "BCA 2024")
        controller.set_mode("class", StepMode.EXISTING)

        step = controller.step_state("class")
        assert step.selected_id == 11
        assert step.fields["name"] == "BCA 2024"


class TestCascade:
    """Test dependent lists through the controller."""

    def test_changing_class_clears_section(self, controller):
        invalidated = record(controller.resolver.selection_invalidated)
        controller.select_existing("class", 11)
        assert controller.select_existing("section", 21)

        controller.select_existing("class", 12)

        assert controller.step_state("section").selected_id is None
        assert invalidated == [("section", 21)]
        assert {s["id"] for s in controller.resolver.candidates("section")} == {22, 23}

    def test_creating_class_empties_section_candidates(self, controller):
        controller.select_existing("class", 11)
        controller.select_existing("section", 21)

        controller.set_mode("class", StepMode.CREATE)

        assert controller.step_state("section").selected_id is None
        assert controller.resolver.candidates("section") == []

    def test_restored_selection_missing_from_list_is_discarded(self, make_controller, storage,
                                                                directory):
        first = make_controller()
        first.select_existing("class", 12)
        first.select_existing("section", 23)
        directory.remove("sections", 23)

        second = make_controller()

        assert second.step_state("class").selected_id == 12
        assert second.step_state("section").selected_id is None
        snapshot = json.loads(storage.get_item(DRAFT_KEYS.state_key))
        assert snapshot["steps"]["section"]["selected_id"] is None

    def test_selection_while_loading_fails_validation(self, make_controller, deferred_runner):
        first = make_controller()
        first.select_existing("teacher", "teacher#7")
        first.advance()
        first.select_existing("class", 11)
        first.advance()
        first.select_existing("section", 21)

        second = make_controller(runner=deferred_runner)
        assert second.current_step_index == 2
        failures = record(second.validation_failed)

        assert second.advance() is False
        assert "still loading" in failures[0][0].field_errors["selected_id"][0]

        deferred_runner.complete_all()
        assert second.advance()


class TestSubmission:
    """Test the submission pipeline through the controller."""

    def test_submit_only_from_last_step(self, controller, directory):
        assert controller.submit() is False
        assert directory.create_calls() == []

    def test_literal_success(self, controller, directory, storage):
        succeeded = record(controller.submission_succeeded)
        callback_payloads = []
        controller.register_callback("submitted", callback_payloads.append)
        fill_literal_scenario(controller, directory)

        assert controller.submit()

        assert [c[1] for c in directory.create_calls()] == ["classes", "sections", "class_teachers"]
        class_payload = directory.create_calls("classes")[0][2]
        assert {k: class_payload[k] for k in ("program", "name", "semester", "year", "max_students")} == {
            "program": 3, "name": "BCA 2024", "semester": 1, "year": 1, "max_students": 60
        }
        assert directory.create_calls("sections")[0][2] == {
            "class_obj": 101, "name": "Section A", "max_students": 60
        }
        assert directory.create_calls("class_teachers")[0][2] == EXPECTED_ASSIGNMENT
        assert succeeded == [(EXPECTED_ASSIGNMENT,)]
        assert callback_payloads == [EXPECTED_ASSIGNMENT]
        assert storage.get_item(DRAFT_KEYS.state_key) is None
        assert storage.get_item(DRAFT_KEYS.step_key) is None
        assert controller.is_completed
        assert not controller.is_submitting

    def test_no_draft_after_success(self, controller, directory, storage, make_controller):
        """A submitted wizard cannot move, so nothing writes the draft back."""
        fill_literal_scenario(controller, directory)
        assert controller.submit()

        assert controller.retreat() is False
        assert controller.jump_to_step(0) is False
        assert controller.advance() is False
        assert controller.current_step_index == 3
        assert storage.get_item(DRAFT_KEYS.state_key) is None

        remounted = make_controller()

        assert not remounted.was_restored
        assert remounted.current_step_index == 0
        assert remounted.step_state("teacher").selected_id is None
        assert remounted.submit() is False
        assert len(directory.create_calls("class_teachers")) == 1

    def test_existing_selection_makes_no_create_call(self, controller, directory):
        controller.select_existing("teacher", "teacher#7")
        controller.advance()
        controller.select_existing("class", 12)
        controller.advance()
        controller.select_existing("section", 23)
        controller.advance()
        controller.set_scalar("academic_session", 9)
        controller.set_scalar("assigned_from", "2025-01-01")

        assert controller.submit()

        assert [c[1] for c in directory.create_calls()] == ["class_teachers"]

    def test_context_college_added(self, make_controller, directory):
        controller = make_controller(context_values={"college": 4})
        fill_literal_scenario(controller, directory)

        controller.submit()

        assert directory.create_calls("sections")[0][2]["college"] == 4
        assert directory.create_calls("class_teachers")[0][2]["college"] == 4

    def test_literal_failure(self, controller, directory, storage):
        failed = record(controller.submission_failed)
        fill_literal_scenario(controller, directory)
        directory.fail_next_create("sections", validation_error({"name": ["Section name already exists."]}))

        controller.submit()

        error = failed[0][0]
        assert error.step_key == "section"
        assert error.step_index == 2
        assert error.entity_kind == "sections"
        assert error.field_errors == {"name": ["Section name already exists."]}
        assert error.resolutions["teacher"].entity_id == "teacher#7"
        assert error.resolutions["teacher"].created is False
        assert error.resolutions["class"].entity_id == 101
        assert error.resolutions["class"].created is True
        assert "section" not in error.resolutions
        assert directory.create_calls("class_teachers") == []
        assert controller.submission_error is error
        assert controller.last_error == error.message
        assert storage.get_item(DRAFT_KEYS.state_key) is not None
        assert not controller.is_submitting

    def test_retry_reuses_created_class(self, controller, directory):
        already_created = record(controller.step_already_created)
        fill_literal_scenario(controller, directory)
        directory.fail_next_create("sections", validation_error({"name": ["Section name already exists."]}))
        controller.submit()

        controller.set_field("section", "name", "Section A")
        assert controller.submit()

        assert len(directory.create_calls("classes")) == 1
        assert len(directory.create_calls("class_teachers")) == 1
        assert directory.create_calls("class_teachers")[0][2] == EXPECTED_ASSIGNMENT
        assert [args[0] for args in already_created] == ["class"]

    def test_retry_after_edit_creates_again(self, controller, directory):
        recreated = record(controller.step_recreated)
        fill_literal_scenario(controller, directory)
        directory.fail_next_create("sections", validation_error({"name": ["Section name already exists."]}))
        controller.submit()

        controller.set_field("class", "name", "BCA 2024 (B)")
        directory.assign_next_id("classes", 102)
        controller.submit()

        assert len(directory.create_calls("classes")) == 2
        assert directory.create_calls("sections")[-1][2]["class_obj"] == 102
        assert len(recreated) == 1
        step_key, left_behind = recreated[0]
        assert step_key == "class"
        assert left_behind.entity_id == 101
        assert controller.resolutions["class"].replaced_id == 101

    def test_recreate_policy_creates_again(self, make_controller, directory):
        controller = make_controller(retry_policy=RetryPolicy.RECREATE)
        recreated = record(controller.step_recreated)
        fill_literal_scenario(controller, directory)
        directory.fail_next_create("sections", validation_error({"name": ["Section name already exists."]}))
        controller.submit()

        controller.submit()

        assert len(directory.create_calls("classes")) == 2
        assert recreated == []

    def test_edits_refused_while_submitting(self, make_controller, directory, deferred_runner):
        controller = make_controller(runner=deferred_runner)
        deferred_runner.complete_all()
        fill_literal_scenario(controller, directory)

        assert controller.submit()
        assert controller.is_submitting

        with pytest.raises(RuntimeError):
            controller.set_field("class", "name", "Other")
        assert controller.submit() is False
        assert controller.advance() is False

        deferred_runner.complete_all()
        assert controller.is_completed

    def test_submit_on_worker_thread(self, make_controller, directory, qtbot):
        runner = QtTaskRunner()
        controller = make_controller(runner=runner, start=False)
        controller.start()
        qtbot.waitUntil(lambda: runner.pending_count() == 0, timeout=5000)
        qtbot.waitUntil(lambda: controller.resolver.is_fresh("teacher"), timeout=5000)
        directory.assign_next_id("classes", 101)
        directory.assign_next_id("sections", 55)

        controller.select_existing("teacher", "teacher#7")
        controller.advance()
        controller.set_mode("class", StepMode.CREATE)
        controller.set_field("class", "program", 3)
        controller.set_field("class", "name", "BCA 2024")
        controller.advance()
        controller.set_mode("section", StepMode.CREATE)
        controller.set_field("section", "name", "Section A")
        controller.advance()
        controller.set_scalar("academic_session", 9)
        controller.set_scalar("assigned_from", "2025-01-01")

        with qtbot.waitSignal(controller.submission_succeeded, timeout=5000) as blocker:
            assert controller.submit()

        assert blocker.args == [EXPECTED_ASSIGNMENT]
        runner.wait_for_all()


class TestCancel:
    """Test cancel."""

    def test_cancel_clears_draft_and_state(self, controller, storage):
        cancelled = record(controller.cancelled)
        controller.select_existing("teacher", "teacher#7")
        controller.advance()

        assert controller.cancel()

        assert cancelled == [()]
        assert storage.get_item(DRAFT_KEYS.state_key) is None
        assert storage.get_item(DRAFT_KEYS.step_key) is None
        assert controller.current_step_index == 0
        assert controller.step_state("teacher").selected_id is None

    def test_usable_after_cancel(self, controller):
        controller.cancel()

        assert controller.select_existing("teacher", "teacher#8")
        assert controller.advance()
