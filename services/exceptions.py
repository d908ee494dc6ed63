# -*- coding: utf-8 -*-
"""Custom exceptions for the application."""

from typing import Any, Dict, List, Optional


class ApiException(Exception):
    """Exception raised for API errors."""

    def __init__(self, message: str, status_code: int = None,
                 response_data: dict = None, context: str = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data if isinstance(response_data, dict) else {}
        self.context = context

    @property
    def field_errors(self) -> Dict[str, List[str]]:
        """Field-level messages from a DRF style error body ({field: [msgs]})."""
        errors = {}
        for field, messages in self.response_data.items():
            if field in ("detail", "message", "non_field_errors", "code"):
                continue
            if isinstance(messages, list):
                errors[field] = [str(m) for m in messages]
            elif isinstance(messages, str):
                errors[field] = [messages]
        return errors

    @property
    def has_general_message(self) -> bool:
        """True when the body carries a message not tied to a single field."""
        data = self.response_data
        return any(data.get(key) for key in ("detail", "message", "non_field_errors"))

    @property
    def general_message(self) -> str:
        """Message that is not tied to a single field."""
        data = self.response_data
        for key in ("detail", "message"):
            if data.get(key):
                return str(data[key])
        non_field = data.get("non_field_errors")
        if isinstance(non_field, list) and non_field:
            return "; ".join(str(m) for m in non_field)
        return self.message

    def __str__(self):
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message


class ValidationException(Exception):
    """Exception raised for validation errors."""

    def __init__(self, message: str, field: str = None,
                 errors: list = None, context: str = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.errors = errors or []
        self.context = context


class NetworkException(Exception):
    """Exception raised for network/connection errors."""

    def __init__(self, message: str, original_error: Exception = None,
                 context: str = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.context = context


class SubmissionError(Exception):
    """
    A wizard submission stopped part-way.

    Carries the step that failed and every resolution obtained before the
    failure; those entities stay committed on the backend.
    """

    def __init__(self, message: str, step_key: Optional[str], step_index: int,
                 entity_kind: Optional[str], field_errors: Dict[str, List[str]] = None,
                 resolutions: Dict[str, Any] = None, cause: Exception = None):
        super().__init__(message)
        self.message = message
        self.step_key = step_key
        self.step_index = step_index
        self.entity_kind = entity_kind
        self.field_errors = field_errors or {}
        self.resolutions = dict(resolutions or {})
        self.cause = cause

    @property
    def is_composite_failure(self) -> bool:
        """True when every step resolved and only the link record failed."""
        return self.step_key is None

    def __str__(self):
        where = self.step_key or "link"
        return f"{where} ({self.entity_kind}): {self.message}"
