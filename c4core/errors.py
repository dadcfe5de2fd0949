"""
Error classes for the C4 DSL core.

Structural problems with DSL text raise DSLError. Model invariant
violations raise a named ValidationError subclass so callers can tell
them apart without parsing messages.
"""

from typing import Any


class C4Error(Exception):
    """Base class for all C4 core errors."""

    def __init__(self, message: str, code: str = "C4_ERROR", details: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {"code": self.code, "message": self.message}
        if self.details is not None:
            result["details"] = self.details
        return result


class DSLError(C4Error):
    """DSL text is structurally invalid and cannot be parsed."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message, "DSL_ERROR", details)


class ValidationError(C4Error):
    """A model or DSL pre-flight check failed."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class MissingFieldError(ValidationError):
    """A required identity or name field is empty."""


class InvalidElementKindError(ValidationError):
    """An element carries a kind outside ElementKind."""


class DanglingReferenceError(ValidationError):
    """A parent, endpoint or view anchor points at a missing element."""


class SelfReferenceError(ValidationError):
    """A relationship connects an element to itself."""


class InvalidDSLError(ValidationError):
    """Candidate DSL text failed the pre-flight gate."""


class WorkspaceFileError(C4Error):
    """A workspace file could not be read or written."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message, "FILE_ERROR", details)


class NotFoundError(C4Error):
    """An element, relationship or view id does not exist in the workspace."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message, "NOT_FOUND", details)


def get_error_message(error: BaseException | str | None) -> str:
    """Extract a user-facing message from an exception or string."""
    if isinstance(error, C4Error):
        return error.message
    if isinstance(error, BaseException):
        return str(error) or error.__class__.__name__
    if isinstance(error, str):
        return error
    return "An unexpected error occurred"
