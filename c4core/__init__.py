"""
C4 DSL Core - Models, parser, generator, validation and view synthesis.

This package translates between C4 workspaces and Structurizr-style DSL
text. It is used by both the backend API and the CLI, ensuring a single
source of truth for all DSL logic. Nothing here holds state between calls.
"""

from .models import (
    # Enums
    ElementKind,
    RelationshipKind,
    ViewKind,
    # Core models
    Position,
    Size,
    Element,
    Relationship,
    View,
    Workspace,
    landscape_view,
)

from .errors import (
    C4Error,
    DSLError,
    ValidationError,
    MissingFieldError,
    InvalidElementKindError,
    DanglingReferenceError,
    SelfReferenceError,
    InvalidDSLError,
    NotFoundError,
    WorkspaceFileError,
)
from .parser import parse_dsl, parse_dsl_with_diagnostics, ParseResult
from .generator import generate_dsl, DSLGenerator
from .views import synthesize_views
from .validation import (
    validate_workspace,
    validate_dsl,
    collect_issues,
    validation_summary,
    ValidationIssue,
    IssueSeverity,
)
from .layout import grid_layout, grid_position

__all__ = [
    # Enums
    "ElementKind",
    "RelationshipKind",
    "ViewKind",
    # Models
    "Position",
    "Size",
    "Element",
    "Relationship",
    "View",
    "Workspace",
    "landscape_view",
    # Errors
    "C4Error",
    "DSLError",
    "ValidationError",
    "MissingFieldError",
    "InvalidElementKindError",
    "DanglingReferenceError",
    "SelfReferenceError",
    "InvalidDSLError",
    "NotFoundError",
    "WorkspaceFileError",
    # DSL
    "parse_dsl",
    "parse_dsl_with_diagnostics",
    "ParseResult",
    "generate_dsl",
    "DSLGenerator",
    "synthesize_views",
    # Validation
    "validate_workspace",
    "validate_dsl",
    "collect_issues",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
    # Layout
    "grid_layout",
    "grid_position",
]
