# -*- coding: utf-8 -*-
"""
Step validation for the Class Teacher Wizard.

Rules that go beyond required/typed fields. Field presence and types are
checked first by the framework; these only run once those pass.
"""

from wizards.framework import StepMode, StepValidationResult
from wizards.framework.validation import parse_date
from wizards.framework.wizard_context import is_blank

MIN_PASSWORD_LENGTH = 8
MIN_USERNAME_LENGTH = 3


def validate_teacher_account(descriptor, step_state, wizard_state) -> StepValidationResult:
    """Password and username rules for a new teacher account."""
    result = StepValidationResult.ok(step_key=descriptor.key)
    if step_state.mode != StepMode.CREATE:
        return result

    fields = step_state.fields
    username = str(fields.get("username") or "").strip()
    password = fields.get("password") or ""
    confirmation = fields.get("confirm_password") or ""

    if len(username) < MIN_USERNAME_LENGTH:
        result.add_error(f"Username must be at least {MIN_USERNAME_LENGTH} characters", "username")
    if len(password) < MIN_PASSWORD_LENGTH:
        result.add_error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters", "password")
    if password != confirmation:
        result.add_error("Passwords do not match", "confirm_password")

    return result


def validate_assignment_period(descriptor, step_state, wizard_state) -> StepValidationResult:
    """The assignment may not end before it starts."""
    result = StepValidationResult.ok(step_key=descriptor.key)

    assigned_to = step_state.fields.get("assigned_to")
    if is_blank(assigned_to):
        return result

    start = parse_date(step_state.fields.get("assigned_from"))
    end = parse_date(assigned_to)
    if start is not None and end is not None and end < start:
        result.add_error("Assigned to cannot be before assigned from", "assigned_to")

    return result
