"""Tests for the fallback grid and the position store."""

from c4core.identifiers import IdentifierTable
from c4core.layout import PositionStore, grid_layout, grid_position
from c4core.models import Element, ElementKind


def test_grid_position():
    first = grid_position(0)
    assert (first.x, first.y) == (40, 40)

    last_in_row = grid_position(3)
    assert (last_in_row.x, last_in_row.y) == (40 + 3 * 280, 40)

    second_row = grid_position(4)
    assert (second_row.x, second_row.y) == (40, 260)


def test_grid_layout_arranges_in_place():
    elements = [
        Element(kind=ElementKind.PERSON, name=f"P{i}") for i in range(3)
    ]
    result = grid_layout(elements, columns=2)

    assert result is elements
    assert [(e.position.x, e.position.y) for e in elements] == [
        (40, 40), (320, 40), (40, 260),
    ]


def test_grid_layout_empty():
    assert grid_layout([]) == []


def test_position_store_copies_to_qualified_names():
    table = IdentifierTable()
    table.register("shop", "shop", "id-shop")
    table.register("web", "shop.web", "id-web")
    store = PositionStore(table)

    store.record("web", 10, 20)
    position = store.lookup("shop.web")
    assert (position.x, position.y) == (10, 20)


def test_position_store_lookup_fallbacks():
    store = PositionStore()
    store.record("web", 1, 2)
    store.record("shop.api", 3, 4)

    trailing = store.lookup("other.web")
    assert (trailing.x, trailing.y) == (1, 2)

    reverse = store.lookup("api")
    assert (reverse.x, reverse.y) == (3, 4)

    assert store.lookup("nothing") is None


def test_position_store_resolve_falls_back_to_grid():
    store = PositionStore()
    position = store.resolve("unknown", 4)
    assert (position.x, position.y) == (40, 260)


def test_position_store_resolve_returns_copy():
    store = PositionStore()
    store.record("a", 5, 5)
    store.resolve("a", 0).x = 99
    assert store.lookup("a").x == 5
