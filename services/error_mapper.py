# -*- coding: utf-8 -*-
"""Centralized error message mapper."""

from typing import Dict, List

from services.exceptions import (
    ApiException, NetworkException, SubmissionError, ValidationException
)
from utils.logger import get_logger

logger = get_logger(__name__)

MSG_CONNECTION = "Could not reach the server. Check your connection and try again."
MSG_TIMEOUT = "The server took too long to respond. Try again."
MSG_REJECTED = "The server rejected the request."
MSG_NOT_FOUND = "The requested record no longer exists."
MSG_CONFLICT = "A record with these details already exists."
MSG_SERVER = "The server failed to process the request."
MSG_UNEXPECTED = "An unexpected error occurred."


def map_api_error(error: ApiException) -> str:
    """Map API exception to a user-facing message.

    Validation errors (400) surface the server's own general message when it
    sent one; field-level messages are available through ``field_messages``.
    """
    status = error.status_code

    if status == 400:
        details = _extract_validation_details(error.response_data)
        if details:
            logger.warning(f"API validation error (400): {details}")
        if error.has_general_message:
            return error.general_message
        return MSG_REJECTED

    if status:
        logger.warning(f"API error ({status}): {error}")
    if status == 404:
        return MSG_NOT_FOUND
    if status == 409:
        return MSG_CONFLICT
    if status and status >= 500:
        return MSG_SERVER
    if error.has_general_message:
        return error.general_message
    return MSG_REJECTED


def map_network_error(error: NetworkException) -> str:
    """Map network exception to user-friendly message."""
    msg = str(error.original_error) if error.original_error else error.message
    if "timeout" in msg.lower() or "timed out" in msg.lower():
        return MSG_TIMEOUT
    return MSG_CONNECTION


def map_exception(error: Exception, context: str = None) -> str:
    """Map any exception to a user-facing message."""
    if isinstance(error, SubmissionError):
        return describe_submission_error(error)

    if isinstance(error, ApiException):
        if not error.context and context:
            error.context = context
        return map_api_error(error)

    if isinstance(error, NetworkException):
        return map_network_error(error)

    if isinstance(error, ValidationException):
        if error.errors:
            logger.warning(f"Validation error: {error.errors}")
        return error.message

    logger.warning(f"Unexpected error: {error}")
    return MSG_UNEXPECTED


def field_messages(error: Exception) -> Dict[str, List[str]]:
    """Field-level messages carried by ``error``, if any."""
    if isinstance(error, SubmissionError):
        return dict(error.field_errors)
    if isinstance(error, ApiException):
        return error.field_errors
    if isinstance(error, ValidationException) and error.field:
        return {error.field: [error.message]}
    return {}


def describe_submission_error(error: SubmissionError) -> str:
    """One-line operator summary: which step failed and what was kept."""
    where = f"step '{error.step_key}'" if error.step_key else "the final link record"
    summary = f"Failed at {where} ({error.entity_kind}): {error.message}"
    created = [key for key, res in error.resolutions.items() if getattr(res, "created", False)]
    if created:
        summary += f". Already created: {', '.join(created)}"
    return summary


def _extract_validation_details(response_data: dict) -> str:
    """Extract validation error details from API response."""
    if not response_data:
        return ""

    lines = []
    for field, messages in response_data.items():
        if isinstance(messages, list):
            for msg in messages:
                lines.append(f"• {field}: {msg}")
        else:
            lines.append(f"• {field}: {messages}")
    return "\n".join(lines)
