"""
Workspace validation - check models and DSL text for structural issues.

Two styles are provided:
- Strict validators (`validate_*`) raise a named ValidationError subclass
  on the first problem. Callers who want guarantees before accepting a
  parsed or hand-built model invoke them explicitly.
- `collect_issues` reports every problem as a ValidationIssue with a
  severity, for display in the backend and MCP tools.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .errors import (
    DanglingReferenceError,
    InvalidDSLError,
    InvalidElementKindError,
    MissingFieldError,
    SelfReferenceError,
    ValidationError,
)
from .models import ElementKind, ViewKind
from .parser import brace_counts

if TYPE_CHECKING:
    from .models import Element, Relationship, View, Workspace


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a workspace."""
    severity: IssueSeverity
    message: str
    element_id: str | None = None
    relationship_id: str | None = None
    view_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.element_id:
            result["element_id"] = self.element_id
        if self.relationship_id:
            result["relationship_id"] = self.relationship_id
        if self.view_id:
            result["view_id"] = self.view_id
        return result


def _blank(value: str | None) -> bool:
    return not value or not value.strip()


# --- Strict validators ---

def validate_element(element: "Element") -> None:
    if _blank(element.id):
        raise MissingFieldError("Element ID is required")
    if _blank(element.name):
        raise MissingFieldError("Element name is required", details={"element_id": element.id})
    if not isinstance(element.kind, ElementKind):
        raise InvalidElementKindError(f"Invalid element type: {element.kind}")


def validate_relationship(
    relationship: "Relationship",
    element_ids: set[str],
    group_ids: frozenset[str] = frozenset(),
) -> None:
    if _blank(relationship.id):
        raise MissingFieldError("Relationship ID is required")
    if _blank(relationship.description):
        raise MissingFieldError(
            "Relationship description is required",
            details={"relationship_id": relationship.id},
        )
    if relationship.source_id not in element_ids:
        raise DanglingReferenceError(f"Source element not found: {relationship.source_id}")
    if relationship.target_id not in element_ids:
        raise DanglingReferenceError(f"Target element not found: {relationship.target_id}")
    for endpoint in (relationship.source_id, relationship.target_id):
        if endpoint in group_ids:
            raise ValidationError(
                f"Groups cannot take part in relationships: {endpoint}",
                details={"relationship_id": relationship.id},
            )
    if relationship.source_id == relationship.target_id:
        raise SelfReferenceError(
            "Relationship cannot connect an element to itself",
            details={"relationship_id": relationship.id},
        )


def validate_view(view: "View", elements: dict[str, "Element"]) -> None:
    if _blank(view.id):
        raise MissingFieldError("View ID is required")
    expected = view.kind.anchor_kind
    anchor_id = view.anchor_id
    if expected is None or anchor_id is None:
        return
    anchor = elements.get(anchor_id)
    if anchor is None:
        raise DanglingReferenceError(f"View {view.key} references missing element: {anchor_id}")
    if anchor.kind != expected:
        raise ValidationError(
            f"View {view.key} must be anchored on a {expected.label}, not a {anchor.kind.label}"
        )


def validate_workspace(workspace: "Workspace") -> None:
    """
    Validate a workspace, raising on the first problem.

    Raises:
        MissingFieldError, InvalidElementKindError, DanglingReferenceError,
        SelfReferenceError or ValidationError
    """
    if _blank(workspace.name):
        raise MissingFieldError("Workspace name is required")

    for element in workspace.elements:
        validate_element(element)

    elements = {e.id: e for e in workspace.elements}
    group_ids = frozenset(e.id for e in workspace.elements if e.kind == ElementKind.GROUP)
    for relationship in workspace.relationships:
        validate_relationship(relationship, set(elements), group_ids)

    for element in workspace.elements:
        if element.parent_id and element.parent_id not in elements:
            raise DanglingReferenceError(
                f"Element {element.id} has invalid parent: {element.parent_id}"
            )

    for view in workspace.views:
        validate_view(view, elements)


def validate_dsl(dsl: str) -> None:
    """
    Pre-flight check for candidate DSL text before a full parse.

    Raises:
        InvalidDSLError: empty text, no workspace keyword, unbalanced braces
    """
    if not dsl or not dsl.strip():
        raise InvalidDSLError("DSL content is empty")

    if "workspace" not in dsl:
        raise InvalidDSLError("DSL must contain a workspace definition")

    opened, closed = brace_counts(dsl)
    if opened != closed:
        raise InvalidDSLError(
            "DSL has unbalanced braces",
            details={"open": opened, "close": closed},
        )


def is_valid_element(element: "Element") -> bool:
    try:
        validate_element(element)
        return True
    except ValidationError:
        return False


def is_valid_workspace(workspace: "Workspace") -> bool:
    try:
        validate_workspace(workspace)
        return True
    except ValidationError:
        return False


def is_valid_dsl(dsl: str) -> bool:
    try:
        validate_dsl(dsl)
        return True
    except ValidationError:
        return False


# --- Issue report ---

def collect_issues(workspace: "Workspace") -> list[ValidationIssue]:
    """
    Validate a workspace and return a list of issues.

    Checks for:
    - Empty workspace - INFO
    - Missing element names - ERROR
    - Invalid parent references - ERROR
    - Invalid relationship references (source/target doesn't exist) - ERROR
    - Relationships to or from a group - ERROR
    - Self-referencing relationships - WARNING
    - Duplicate relationships (same source->target) - WARNING
    - Orphan elements (no relationships, groups excluded) - WARNING
    - View anchors missing or of the wrong kind - ERROR
    - More than one landscape view - WARNING

    Args:
        workspace: The workspace to validate

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    elements = {e.id: e for e in workspace.elements}

    if not workspace.elements:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Workspace has no elements"
        ))

    for element in workspace.elements:
        if _blank(element.name):
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message="Element has an empty name",
                element_id=element.id
            ))
        if element.parent_id and element.parent_id not in elements:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Element references non-existent parent: {element.parent_id}",
                element_id=element.id
            ))

    connected: set[str] = set()
    seen_pairs: set[tuple[str, str]] = set()
    for rel in workspace.relationships:
        connected.add(rel.source_id)
        connected.add(rel.target_id)

        if rel.source_id not in elements:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Relationship references non-existent source element: {rel.source_id}",
                relationship_id=rel.id
            ))
        if rel.target_id not in elements:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Relationship references non-existent target element: {rel.target_id}",
                relationship_id=rel.id
            ))
        for endpoint in (rel.source_id, rel.target_id):
            if endpoint in elements and elements[endpoint].kind == ElementKind.GROUP:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    message=f"Relationship cannot connect a group: {elements[endpoint].name}",
                    relationship_id=rel.id,
                    element_id=endpoint
                ))
        if rel.source_id == rel.target_id:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Self-referencing relationship (element points to itself)",
                relationship_id=rel.id,
                element_id=rel.source_id
            ))

        pair = (rel.source_id, rel.target_id)
        if pair in seen_pairs:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Duplicate relationship from {rel.source_id} to {rel.target_id}",
                relationship_id=rel.id
            ))
        else:
            seen_pairs.add(pair)

    orphans = [
        e for e in workspace.elements
        if e.kind != ElementKind.GROUP and e.id not in connected
    ]
    if orphans and workspace.relationships:
        labels = ", ".join(f"{e.name} ({e.id})" for e in orphans)
        issues.append(ValidationIssue(
            severity=IssueSeverity.WARNING,
            message=f"Orphan elements (no relationships): {labels}"
        ))

    for view in workspace.views:
        try:
            validate_view(view, elements)
        except ValidationError as e:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=e.message,
                view_id=view.id
            ))

    landscapes = [v for v in workspace.views if v.kind == ViewKind.SYSTEM_LANDSCAPE]
    if len(landscapes) > 1:
        issues.append(ValidationIssue(
            severity=IssueSeverity.WARNING,
            message=f"Workspace has {len(landscapes)} landscape views"
        ))

    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    errors = len([i for i in issues if i.severity == IssueSeverity.ERROR])
    return {
        "total": len(issues),
        "errors": errors,
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": errors == 0
    }
