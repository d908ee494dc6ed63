# -*- coding: utf-8 -*-
"""
Class Teacher Wizard definition.

Steps:
    1. teacher     - select or create a teacher account
    2. class       - select or create a class
    3. section     - select or create a section of that class
    4. assignment  - academic session and assignment period

The final record is a class-teacher assignment linking the three.
"""

from datetime import date
from typing import Any, Dict, Iterable

from app.config import Config, EntityKinds, Vocabularies
from wizards.framework import FieldSpec, StepDescriptor, WizardDefinition
from wizards.framework.wizard_context import is_blank

from .validators import validate_assignment_period, validate_teacher_account

WIZARD_ID = "class_teacher"

TEACHER_STEP = "teacher"
CLASS_STEP = "class"
SECTION_STEP = "section"
ASSIGNMENT_STEP = "assignment"

GENDER_CHOICES = tuple(code for code, _ in Vocabularies.GENDERS)

TEACHER_FIELDS = (
    FieldSpec("username", "Username", required=True),
    FieldSpec("password", "Password", required=True, kind="password"),
    FieldSpec("confirm_password", "Confirm password", required=True, kind="password"),
    FieldSpec("email", "Email", required=True, kind="email"),
    FieldSpec("first_name", "First name", required=True),
    FieldSpec("middle_name", "Middle name"),
    FieldSpec("last_name", "Last name", required=True),
    FieldSpec("phone", "Phone"),
    FieldSpec("gender", "Gender", default="male", kind="choice", choices=GENDER_CHOICES),
    FieldSpec("date_of_birth", "Date of birth", kind="date"),
)

CLASS_FIELDS = (
    FieldSpec("program", "Program", required=True, kind="int"),
    FieldSpec("name", "Class name", required=True),
    FieldSpec("semester", "Semester", required=True, default=1, kind="int"),
    FieldSpec("year", "Year", required=True, default=1, kind="int"),
    FieldSpec("max_students", "Maximum students", default=60, kind="int"),
)

SECTION_FIELDS = (
    FieldSpec("name", "Section name", required=True),
    FieldSpec("max_students", "Maximum students", default=60, kind="int"),
)

ASSIGNMENT_FIELDS = (
    FieldSpec("academic_session", "Academic session", required=True, kind="int"),
    FieldSpec("assigned_from", "Assigned from", required=True,
              default=lambda: date.today().isoformat(), kind="date"),
    FieldSpec("assigned_to", "Assigned to", kind="date"),
    FieldSpec("is_active", "Active", kind="bool"),
)


def _typed_values(specs: Iterable[FieldSpec], fields: Dict[str, Any]) -> Dict[str, Any]:
    """Non-blank field values, whole numbers as int."""
    values = {}
    for spec in specs:
        value = fields.get(spec.name)
        if is_blank(value):
            continue
        if spec.kind == "int":
            value = int(value)
        elif isinstance(value, str):
            value = value.strip()
        values[spec.name] = value
    return values


# ==================== Candidate filters ====================

def teacher_filter(dependencies: Dict[str, Any]) -> Dict[str, Any]:
    return {"user_type": "teacher", "page_size": Config.TEACHER_PAGE_SIZE, "is_active": True}


def class_filter(dependencies: Dict[str, Any]) -> Dict[str, Any]:
    return {"page_size": Config.CANDIDATE_PAGE_SIZE, "is_active": True}


def section_filter(dependencies: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "class_obj": dependencies[CLASS_STEP],
        "page_size": Config.CANDIDATE_PAGE_SIZE,
        "is_active": True,
    }


# ==================== Create payloads ====================

def build_teacher_payload(fields: Dict[str, Any], wizard_state) -> Dict[str, Any]:
    """Account payload; optional values the operator left empty are sent as null."""

    def optional(name):
        value = fields.get(name)
        if is_blank(value):
            return None
        return value.strip() if isinstance(value, str) else value

    return {
        "username": str(fields.get("username") or "").lower().strip(),
        "password": fields.get("password"),
        "password_confirm": fields.get("confirm_password"),
        "email": optional("email"),
        "first_name": optional("first_name"),
        "middle_name": optional("middle_name"),
        "last_name": optional("last_name"),
        "phone": optional("phone"),
        "gender": optional("gender"),
        "date_of_birth": optional("date_of_birth"),
        "user_type": "teacher",
        "is_active": True,
    }


def build_class_payload(fields: Dict[str, Any], wizard_state) -> Dict[str, Any]:
    payload = _typed_values(CLASS_FIELDS, fields)
    payload["is_active"] = True
    session = wizard_state.step(ASSIGNMENT_STEP).fields.get("academic_session")
    if not is_blank(session):
        payload["academic_session"] = int(session)
    return payload


def build_section_payload(fields: Dict[str, Any], wizard_state) -> Dict[str, Any]:
    return _typed_values(SECTION_FIELDS, fields)


def build_assignment(links: Dict[str, Any], scalars: Dict[str, Any]) -> Dict[str, Any]:
    """Class-teacher record from the resolved ids and the assignment fields."""
    payload = dict(links)
    payload.update(_typed_values(ASSIGNMENT_FIELDS, scalars))
    return payload


# ==================== Definition ====================

def build_class_teacher_definition() -> WizardDefinition:
    """Steps of the assign-class-teacher wizard."""
    steps = [
        StepDescriptor(
            key=TEACHER_STEP,
            title="Teacher",
            description="Select an existing teacher or create a teacher account",
            entity_kind=EntityKinds.USERS,
            candidate_filter=teacher_filter,
            fields=TEACHER_FIELDS,
            payload_builder=build_teacher_payload,
            link_field="teacher",
            validator=validate_teacher_account,
        ),
        StepDescriptor(
            key=CLASS_STEP,
            title="Class",
            description="Select an existing class or create a new one",
            entity_kind=EntityKinds.CLASSES,
            candidate_filter=class_filter,
            fields=CLASS_FIELDS,
            payload_builder=build_class_payload,
            link_field="class_obj",
        ),
        StepDescriptor(
            key=SECTION_STEP,
            title="Section",
            description="Select a section of the class or create one",
            entity_kind=EntityKinds.SECTIONS,
            depends_on=(CLASS_STEP,),
            candidate_filter=section_filter,
            fields=SECTION_FIELDS,
            inject={"class_obj": CLASS_STEP},
            payload_builder=build_section_payload,
            link_field="section",
        ),
        StepDescriptor(
            key=ASSIGNMENT_STEP,
            title="Assignment",
            description="Academic session and assignment period",
            fields=ASSIGNMENT_FIELDS,
            validator=validate_assignment_period,
        ),
    ]

    return WizardDefinition(
        wizard_id=WIZARD_ID,
        title="Assign Class Teacher",
        steps=steps,
        composite_kind=EntityKinds.CLASS_TEACHERS,
        composite_builder=build_assignment,
        lookups={
            "programs": (EntityKinds.PROGRAMS,
                         {"page_size": Config.CANDIDATE_PAGE_SIZE, "is_active": True}),
            "academic_sessions": (EntityKinds.ACADEMIC_SESSIONS,
                                  {"page_size": Config.CANDIDATE_PAGE_SIZE}),
        },
    )
