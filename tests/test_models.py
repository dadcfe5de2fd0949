"""Tests for the workspace models and per-kind tables."""

from c4core.config import DEFAULT_SIZES, STYLE_COLORS
from c4core.models import (
    ELEMENT_LABELS,
    ELEMENT_STYLE_TAGS,
    VIEW_ANCHOR_KINDS,
    VIEW_VISIBLE_KINDS,
    Element,
    ElementKind,
    Relationship,
    View,
    ViewKind,
    Workspace,
)


def test_every_element_kind_has_table_entries():
    for kind in ElementKind:
        assert kind in ELEMENT_LABELS
        assert kind in ELEMENT_STYLE_TAGS
        assert kind.value in DEFAULT_SIZES
        if kind.style_tag is not None:
            assert kind.style_tag in STYLE_COLORS


def test_every_view_kind_has_table_entries():
    for kind in ViewKind:
        assert kind in VIEW_VISIBLE_KINDS
        assert kind in VIEW_ANCHOR_KINDS


def test_element_kind_properties():
    assert ElementKind.SOFTWARE_SYSTEM.label == "Software System"
    assert ElementKind.CONTAINER.has_technology
    assert not ElementKind.PERSON.has_technology
    assert ElementKind.GROUP.default_size == (600, 400)


def test_ids_default_to_unique_strings():
    a = Element(kind=ElementKind.PERSON, name="A")
    b = Element(kind=ElementKind.PERSON, name="B")
    assert a.id != b.id


def test_legacy_camel_case_keys_are_accepted():
    element = Element.model_validate(
        {"id": "c", "type": "container", "name": "C", "parentId": "s", "isExternal": True}
    )
    assert element.kind == ElementKind.CONTAINER
    assert element.parent_id == "s"
    assert element.is_external

    relationship = Relationship.model_validate({"sourceId": "a", "targetId": "b"})
    assert (relationship.source_id, relationship.target_id) == ("a", "b")

    view = View.model_validate({"key": "k", "type": "component", "containerId": "c"})
    assert view.anchor_id == "c"


def test_json_dict_round_trip():
    ws = Workspace(
        name="W",
        elements=[
            Element(id="s", kind=ElementKind.SOFTWARE_SYSTEM, name="S"),
            Element(id="c", kind=ElementKind.CONTAINER, name="C", parent_id="s"),
        ],
        relationships=[Relationship(id="r", source_id="c", target_id="s")],
        views=[View(id="v", key="v", kind=ViewKind.CONTAINER, software_system_id="s")],
    )
    data = ws.to_json_dict()
    assert data["elements"][0]["kind"] == "softwareSystem"
    assert Workspace.from_json_dict(data) == ws


def test_workspace_lookups():
    ws = Workspace(elements=[
        Element(id="s", kind=ElementKind.SOFTWARE_SYSTEM, name="S"),
        Element(id="c", kind=ElementKind.CONTAINER, name="C", parent_id="s"),
        Element(id="k", kind=ElementKind.COMPONENT, name="K", parent_id="c"),
    ])
    assert ws.get_element("c").name == "C"
    assert ws.get_element("missing") is None
    assert [e.id for e in ws.children_of(None)] == ["s"]
    assert ws.descendant_ids("s") == {"c", "k"}
