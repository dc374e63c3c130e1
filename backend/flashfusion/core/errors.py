# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Error taxonomy for the workflow engine.

Every error carries the HTTP status the API answers with, so routes and
the application-wide handler can turn any FlashFusionError into a JSON
body without a lookup table.
"""

from typing import Any, Dict, Optional

# Longest error text returned to API callers
MAX_USER_MESSAGE_LENGTH = 500


class FlashFusionError(Exception):
    """Base exception for all FlashFusion errors."""

    status_code = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            message: Human-readable error message
            status_code: HTTP status override for this instance
            details: Structured context (ids, offending fields)
        """
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Body of the API error response."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details
        }


class NotFoundError(FlashFusionError):
    """A workflow, execution or node does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{resource} not found: {identifier}", details=details)
        self.resource = resource
        self.identifier = identifier


class ValidationError(FlashFusionError):
    """Rejected input: malformed documents, bad ids, broken graphs."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.field = field


class ConflictError(FlashFusionError):
    """A record with the same id already exists."""

    status_code = 409


class ForbiddenError(FlashFusionError):
    """An operation is refused by policy."""

    status_code = 403

    def __init__(self, message: str = "Forbidden", resource: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.resource = resource


class ConfigurationError(FlashFusionError):
    """The YAML configuration could not be loaded."""

    def __init__(self, message: str, config_file: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.config_file = config_file


class ExecutionError(FlashFusionError):
    """
    A workflow run failed.

    ``execution_id`` is filled in by the execution service once the run
    has a persisted record, so callers can fetch its node log.
    """

    def __init__(self, message: str, execution_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.execution_id = execution_id


def sanitize_error_for_user(error: Exception, include_type: bool = True) -> str:
    """
    Single-line error text safe to return to API callers.

    Whitespace runs (including newlines from wrapped tracebacks) collapse to
    one space and the text is cut at MAX_USER_MESSAGE_LENGTH.
    """
    error_msg = " ".join(str(error).split())

    if len(error_msg) > MAX_USER_MESSAGE_LENGTH:
        error_msg = error_msg[:MAX_USER_MESSAGE_LENGTH] + "..."

    if include_type:
        return f"{type(error).__name__}: {error_msg}"
    return error_msg
