"""Tests for strict validators and the issue report."""

import pytest

from c4core.errors import (
    C4Error,
    DanglingReferenceError,
    InvalidDSLError,
    MissingFieldError,
    SelfReferenceError,
    ValidationError,
)
from c4core.models import Element, ElementKind, Relationship, View, ViewKind, Workspace
from c4core.validation import (
    IssueSeverity,
    collect_issues,
    is_valid_dsl,
    is_valid_element,
    is_valid_workspace,
    validate_dsl,
    validate_relationship,
    validate_view,
    validate_workspace,
    validation_summary,
)


def _elements():
    return [
        Element(id="u", kind=ElementKind.PERSON, name="User"),
        Element(id="s", kind=ElementKind.SOFTWARE_SYSTEM, name="Shop"),
    ]


# ── Strict validators ──────────────────────────────────────────────

def test_validate_dsl_rejects_empty_text():
    with pytest.raises(InvalidDSLError):
        validate_dsl("   ")


def test_validate_dsl_requires_workspace():
    with pytest.raises(InvalidDSLError) as excinfo:
        validate_dsl('model { u = person "User" }')
    assert "workspace" in excinfo.value.message


def test_validate_dsl_checks_brace_balance():
    with pytest.raises(InvalidDSLError) as excinfo:
        validate_dsl("workspace { model {")
    assert excinfo.value.details == {"open": 2, "close": 0}


def test_validate_dsl_accepts_valid_text(shop_dsl):
    validate_dsl(shop_dsl)
    assert is_valid_dsl(shop_dsl)
    assert not is_valid_dsl("")


def test_error_hierarchy():
    assert issubclass(InvalidDSLError, ValidationError)
    assert issubclass(SelfReferenceError, ValidationError)
    assert issubclass(ValidationError, C4Error)
    assert InvalidDSLError("x").code == "VALIDATION_ERROR"


def test_validate_element_requires_name():
    assert is_valid_element(Element(kind=ElementKind.PERSON, name="A"))
    assert not is_valid_element(Element(kind=ElementKind.PERSON, name="  "))


def test_validate_relationship_errors():
    ids = {"u", "s"}
    with pytest.raises(SelfReferenceError):
        validate_relationship(Relationship(source_id="u", target_id="u", description="x"), ids)
    with pytest.raises(DanglingReferenceError):
        validate_relationship(Relationship(source_id="u", target_id="gone", description="x"), ids)
    with pytest.raises(MissingFieldError):
        validate_relationship(Relationship(source_id="u", target_id="s"), ids)


def test_validate_view_anchor_kind():
    elements = {e.id: e for e in _elements()}
    validate_view(View(key="ok", kind=ViewKind.CONTAINER, software_system_id="s"), elements)
    with pytest.raises(ValidationError):
        validate_view(View(key="bad", kind=ViewKind.CONTAINER, software_system_id="u"), elements)
    with pytest.raises(DanglingReferenceError):
        validate_view(View(key="gone", kind=ViewKind.SYSTEM_CONTEXT, software_system_id="x"), elements)


def test_validate_workspace():
    ws = Workspace(
        elements=_elements(),
        relationships=[Relationship(source_id="u", target_id="s", description="Uses")],
    )
    validate_workspace(ws)
    assert is_valid_workspace(ws)

    broken = ws.model_copy(update={"elements": [
        *ws.elements,
        Element(id="c", kind=ElementKind.CONTAINER, name="C", parent_id="missing"),
    ]})
    with pytest.raises(DanglingReferenceError):
        validate_workspace(broken)


# ── Issue report ───────────────────────────────────────────────────

def test_collect_issues_empty_workspace():
    issues = collect_issues(Workspace())
    assert len(issues) == 1
    assert issues[0].severity == IssueSeverity.INFO
    assert validation_summary(issues)["valid"]


def test_collect_issues_relationship_problems():
    ws = Workspace(
        elements=_elements(),
        relationships=[
            Relationship(id="r1", source_id="u", target_id="s", description="Uses"),
            Relationship(id="r2", source_id="u", target_id="s", description="Uses again"),
            Relationship(id="r3", source_id="s", target_id="s", description="Loops"),
            Relationship(id="r4", source_id="u", target_id="ghost", description="Haunts"),
        ],
    )
    issues = collect_issues(ws)
    by_relationship = {i.relationship_id: i.severity for i in issues if i.relationship_id}

    assert by_relationship["r2"] == IssueSeverity.WARNING
    assert by_relationship["r3"] == IssueSeverity.WARNING
    assert by_relationship["r4"] == IssueSeverity.ERROR
    assert "r1" not in by_relationship

    summary = validation_summary(issues)
    assert summary["errors"] == 1
    assert summary["warnings"] == 2
    assert not summary["valid"]


def test_collect_issues_orphans_only_with_relationships():
    lonely = Element(id="x", kind=ElementKind.SOFTWARE_SYSTEM, name="Lonely")
    group = Element(id="g", kind=ElementKind.GROUP, name="Team")

    ws = Workspace(elements=[*_elements(), lonely, group])
    assert not any("Orphan" in i.message for i in collect_issues(ws))

    ws = ws.model_copy(update={"relationships": [
        Relationship(source_id="u", target_id="s", description="Uses"),
    ]})
    orphans = [i for i in collect_issues(ws) if "Orphan" in i.message]
    assert len(orphans) == 1
    assert "Lonely" in orphans[0].message
    assert "Team" not in orphans[0].message


def test_collect_issues_views():
    ws = Workspace(
        elements=_elements(),
        views=[
            View(id="l1", key="a", kind=ViewKind.SYSTEM_LANDSCAPE),
            View(id="l2", key="b", kind=ViewKind.SYSTEM_LANDSCAPE),
            View(id="v", key="c", kind=ViewKind.CONTAINER, software_system_id="u"),
        ],
    )
    issues = collect_issues(ws)

    assert any(i.view_id == "v" and i.severity == IssueSeverity.ERROR for i in issues)
    assert any("2 landscape views" in i.message for i in issues)


def test_issue_to_dict():
    issue = collect_issues(Workspace())[0]
    assert issue.to_dict() == {"type": "info", "message": "Workspace has no elements"}


def test_group_endpoints_are_rejected():
    ws = Workspace(
        elements=[*_elements(), Element(id="g", kind=ElementKind.GROUP, name="Team")],
        relationships=[Relationship(id="r", source_id="g", target_id="s", description="Owns")],
    )
    with pytest.raises(ValidationError):
        validate_workspace(ws)
    with pytest.raises(ValidationError):
        validate_relationship(ws.relationships[0], {"u", "s", "g"}, frozenset({"g"}))

    errors = [i for i in collect_issues(ws) if i.severity == IssueSeverity.ERROR]
    assert [(i.relationship_id, i.element_id) for i in errors] == [("r", "g")]
