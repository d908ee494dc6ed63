# -*- coding: utf-8 -*-
"""
Tests for the Submission Pipeline.

Tests cover:
- Sequential resolution order
- Id injection into later payloads
- Partial failure retention
- Reuse of results from an earlier attempt
"""

import pytest

from app.config import RetryPolicy
from services.exceptions import NetworkException, ValidationException
from services.mock_directory import MockDirectory, validation_error
from wizards.framework import StepMode, SubmissionPipeline, WizardState


@pytest.fixture
def chain_directory():
    return MockDirectory()


@pytest.fixture
def chain_state(chain_definition):
    state = WizardState.create_default(chain_definition)
    for key in ("campus", "building", "room", "desk"):
        state.step(key).fields["name"] = f"{key}-1"
    return state


class TestSequentialResolution:
    """Test the order and content of the remote calls."""

    def test_creates_in_step_order(self, chain_definition, chain_directory, chain_state):
        pipeline = SubmissionPipeline(chain_definition, chain_directory)

        outcome = pipeline.run(chain_state)

        assert outcome.succeeded
        assert [c[1] for c in chain_directory.calls] == [
            "campuses", "buildings", "rooms", "desks", "desk_assignments"
        ]
        assert outcome.newly_resolved == ["campus", "building", "room", "desk"]

    def test_earlier_ids_injected(self, chain_definition, chain_directory, chain_state):
        chain_directory.assign_next_id("campuses", 7)
        chain_directory.assign_next_id("buildings", 70)
        chain_directory.assign_next_id("rooms", 700)
        chain_directory.assign_next_id("desks", 7000)

        outcome = SubmissionPipeline(chain_definition, chain_directory).run(chain_state)

        assert chain_directory.create_calls("rooms")[0][2] == {"name": "room-1", "parent": 70}
        assert outcome.composite_payload == {
            "campus": 7, "building": 70, "room": 700, "desk": 7000
        }

    def test_existing_steps_make_no_call(self, chain_definition, chain_directory, chain_state):
        chain_state.step("campus").mode = StepMode.EXISTING
        chain_state.step("campus").selected_id = 3

        outcome = SubmissionPipeline(chain_definition, chain_directory).run(chain_state)

        assert [c[1] for c in chain_directory.create_calls()][0] == "buildings"
        assert chain_directory.create_calls("buildings")[0][2]["parent"] == 3
        assert outcome.resolutions["campus"].created is False

    def test_context_values_added(self, chain_definition, chain_directory, chain_state):
        pipeline = SubmissionPipeline(
            chain_definition, chain_directory, context_values={"college": 4, "unset": None}
        )

        outcome = pipeline.run(chain_state)

        assert chain_directory.create_calls("campuses")[0][2]["college"] == 4
        assert outcome.composite_payload["college"] == 4
        assert "unset" not in outcome.composite_payload


class TestPartialFailure:
    """Test stopping at the first failure."""

    def test_stops_at_failing_step(self, chain_definition, chain_directory, chain_state):
        chain_directory.fail_next_create("rooms", validation_error({"name": ["Taken."]}))

        outcome = SubmissionPipeline(chain_definition, chain_directory).run(chain_state)

        assert not outcome.succeeded
        assert outcome.error.step_key == "room"
        assert outcome.error.step_index == 2
        assert outcome.error.field_errors == {"name": ["Taken."]}
        assert sorted(outcome.resolutions) == ["building", "campus"]
        assert chain_directory.create_calls("desks") == []
        assert chain_directory.create_calls("desk_assignments") == []

    def test_composite_failure(self, chain_definition, chain_directory, chain_state):
        chain_directory.fail_next_create("desk_assignments", NetworkException("refused"))

        outcome = SubmissionPipeline(chain_definition, chain_directory).run(chain_state)

        assert outcome.error.is_composite_failure
        assert outcome.error.step_index == 3
        assert len(outcome.resolutions) == 4

    def test_missing_selection_stops_before_any_call(self, chain_definition, chain_directory,
                                                     chain_state):
        chain_state.step("campus").mode = StepMode.EXISTING

        outcome = SubmissionPipeline(chain_definition, chain_directory).run(chain_state)

        assert outcome.error.step_key == "campus"
        assert outcome.error.message == "No existing campus selected"
        assert outcome.error.field_errors == {"selected_id": ["No existing campus selected"]}
        assert isinstance(outcome.error.cause, ValidationException)
        assert chain_directory.calls == []

    def test_reuse_skips_unchanged_steps(self, chain_definition, chain_directory, chain_state):
        chain_directory.fail_next_create("rooms", validation_error({"name": ["Taken."]}))
        pipeline = SubmissionPipeline(chain_definition, chain_directory, RetryPolicy.REUSE)
        first = pipeline.run(chain_state)

        chain_state.step("room").fields["name"] = "room-2"
        second = pipeline.run(chain_state, first.resolutions)

        assert second.succeeded
        assert second.reused_keys == ["campus", "building"]
        assert len(chain_directory.create_calls("campuses")) == 1
        assert len(chain_directory.create_calls("buildings")) == 1

    def test_edited_step_created_again(self, chain_definition, chain_directory, chain_state):
        chain_directory.fail_next_create("rooms", validation_error({"name": ["Taken."]}))
        pipeline = SubmissionPipeline(chain_definition, chain_directory, RetryPolicy.REUSE)
        first = pipeline.run(chain_state)

        chain_state.step("building").fields["name"] = "building-2"
        second = pipeline.run(chain_state, first.resolutions)

        assert second.reused_keys == ["campus"]
        assert len(chain_directory.create_calls("buildings")) == 2
        assert second.resolutions["building"].replaced_id == first.resolutions["building"].entity_id
        assert second.resolutions["campus"].replaced_id is None

    def test_recreate_ignores_prior(self, chain_definition, chain_directory, chain_state):
        chain_directory.fail_next_create("rooms", validation_error({"name": ["Taken."]}))
        pipeline = SubmissionPipeline(chain_definition, chain_directory, RetryPolicy.RECREATE)
        first = pipeline.run(chain_state)

        second = pipeline.run(chain_state, first.resolutions)

        assert second.succeeded
        assert second.reused_keys == []
        assert len(chain_directory.create_calls("campuses")) == 2
