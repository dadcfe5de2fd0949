"""Tests for identifier derivation and resolution."""

from c4core.identifiers import (
    RESERVED_WORDS,
    IdentifierAllocator,
    IdentifierTable,
    element_identity,
    is_dsl_identifier,
    sanitize_key,
    slugify,
    transliterate,
    view_identity,
)
from c4core.models import Element, ElementKind, ViewKind


def test_transliterate_cyrillic():
    assert transliterate("Сервис") == "servis"
    assert transliterate("Shop") == "shop"


def test_slugify():
    assert slugify("order service") == "OrderService"
    assert slugify("Сервис заказов") == "ServisZakazov"
    assert slugify("web-app v2") == "WebAppV2"
    assert slugify("!!!") == ""


def test_element_identity_with_suffixes():
    kind = ElementKind.CONTAINER
    assert element_identity(kind, "Order Service", []) == "OrderService_Container"
    assert element_identity(kind, "Order Service", ["OrderService_Container"]) == "OrderService_Container_1"
    assert element_identity(
        kind, "Order Service", ["OrderService_Container", "OrderService_Container_1"]
    ) == "OrderService_Container_2"


def test_element_identity_uses_kind_label_without_spaces():
    assert element_identity(ElementKind.SOFTWARE_SYSTEM, "Shop", []) == "Shop_SoftwareSystem"
    assert element_identity(ElementKind.SOFTWARE_SYSTEM, "!!!", []) == "Unnamed_SoftwareSystem"


def test_view_identity():
    assert view_identity("Main Flow", []) == "MainFlow"
    assert view_identity("Main Flow", ["MainFlow"]) == "MainFlow_1"
    assert view_identity("", []) == "view"


def test_sanitize_key():
    assert sanitize_key("My View!") == "My_View"
    assert sanitize_key("a  b-c") == "a_b-c"
    assert sanitize_key("") == ""


def test_is_dsl_identifier():
    assert is_dsl_identifier("a1_b")
    assert not is_dsl_identifier("1a")
    assert not is_dsl_identifier("a-b")
    assert not is_dsl_identifier("")


def test_identifier_table_bare_and_qualified():
    table = IdentifierTable()
    table.register("a", "a", "id-a")
    table.register("w", "a.w", "id-w")

    assert table.resolve("a.w") == "id-w"
    assert table.resolve("w") == "id-w"
    assert table.resolve("missing") is None
    assert "a" in table
    assert table.qualified_names_ending_with("w") == ["a.w"]
    assert len(table) == 2


def test_allocator_reuses_valid_ids():
    allocator = IdentifierAllocator([
        Element(id="Shop", kind=ElementKind.SOFTWARE_SYSTEM, name="Shop"),
    ])
    assert allocator.get("Shop") == "Shop"


def test_allocator_fallback_identifiers():
    allocator = IdentifierAllocator([
        Element(id="123-abc", kind=ElementKind.CONTAINER, name="My API"),
        Element(id="zz-1", kind=ElementKind.CONTAINER, name="9lives"),
    ])
    assert allocator.get("123-abc") == "MyAPI_123a"
    assert allocator.get("zz-1") == "element9lives_zz1"
    assert allocator.get(None) is None
    assert allocator.get("unknown") is None


def test_allocator_fallback_never_takes_a_verbatim_id():
    allocator = IdentifierAllocator([
        Element(id="x-1", kind=ElementKind.PERSON, name="A"),
        Element(id="A_x1", kind=ElementKind.PERSON, name="Other"),
    ])
    assert allocator.get("A_x1") == "A_x1"
    assert allocator.get("x-1") == "A_x1_1"


def test_keywords_are_not_identifiers():
    for kind in (*ElementKind, *ViewKind):
        assert kind.value in RESERVED_WORDS
    assert not is_dsl_identifier("workspace")
    assert not is_dsl_identifier("this")
    assert is_dsl_identifier("Workspace")


def test_allocator_never_reuses_keywords():
    allocator = IdentifierAllocator([
        Element(id="workspace", kind=ElementKind.PERSON, name="Admin"),
        Element(id="this", kind=ElementKind.SOFTWARE_SYSTEM, name="Self"),
        Element(id="x-1", kind=ElementKind.PERSON, name="person"),
    ])
    assert allocator.get("workspace") == "Admin_work"
    assert allocator.get("this") == "Self_this"
    assert allocator.get("x-1") == "person_x1"
