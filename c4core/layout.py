"""
Element positions: recovery from DSL metadata and the fallback grid.

The generator writes each element's position into its views as a comment
(`# element <identifier> <x> <y>`). While parsing, `PositionStore`
collects those entries and hands them back once every element is known.
Elements with no recoverable position land on a fixed grid so that
parsing the same text twice always gives the same layout.
"""

from typing import Optional, TYPE_CHECKING

from .config import DSL_LAYOUT
from .models import Position

if TYPE_CHECKING:
    from .identifiers import IdentifierTable
    from .models import Element


def grid_position(
    index: int,
    padding: float = DSL_LAYOUT["padding"],
    cell_width: float = DSL_LAYOUT["element_width"],
    cell_height: float = DSL_LAYOUT["element_height"],
    col_gap: float = DSL_LAYOUT["col_gap"],
    row_gap: float = DSL_LAYOUT["row_gap"],
    columns: int = DSL_LAYOUT["cols_per_row"],
) -> Position:
    """
    Position of the index-th cell of the fallback grid.

    With the defaults, index 4 is the first cell of the second row:
    (40, 260).
    """
    col = index % columns
    row = index // columns
    return Position(
        x=padding + col * (cell_width + col_gap),
        y=padding + row * (cell_height + row_gap),
    )


def grid_layout(elements: list["Element"], columns: Optional[int] = None) -> list["Element"]:
    """
    Arrange elements on the fallback grid in collection order.

    Args:
        elements: Elements to arrange
        columns: Number of columns (configured default if None)

    Returns:
        The same list of elements (modified in-place)
    """
    if not elements:
        return elements

    columns = columns or DSL_LAYOUT["cols_per_row"]
    for i, element in enumerate(elements):
        element.position = grid_position(i, columns=columns)

    return elements


class PositionStore:
    """
    Positions recorded from view blocks, keyed by DSL identifier.

    Lookups tolerate the DSL writing short identifiers (`web`) for
    elements declared with nested paths (`shop.web`) and vice versa.
    """

    def __init__(self, identifiers: Optional["IdentifierTable"] = None):
        self._positions: dict[str, Position] = {}
        self._identifiers = identifiers

    def record(self, identifier: str, x: float, y: float) -> None:
        """
        Record a position for a DSL identifier.

        The position is also copied to every already-known qualified
        identifier that ends with `.identifier`.
        """
        position = Position(x=x, y=y)
        self._positions[identifier] = position
        if self._identifiers is not None:
            for qualified in self._identifiers.qualified_names_ending_with(identifier):
                self._positions[qualified] = position

    def lookup(self, identifier: str) -> Optional[Position]:
        """Exact match, then the trailing dotted segment, then any recorded suffix."""
        position = self._positions.get(identifier)
        if position is not None:
            return position

        if "." in identifier:
            position = self._positions.get(identifier.rsplit(".", 1)[1])
            if position is not None:
                return position

        for recorded, candidate in self._positions.items():
            if identifier.endswith(f".{recorded}") or recorded.endswith(f".{identifier}"):
                return candidate
        return None

    def resolve(self, identifier: str, index: int) -> Position:
        """Recorded position for identifier, or the grid cell for index."""
        position = self.lookup(identifier)
        if position is None:
            return grid_position(index)
        return position.model_copy()

    def __len__(self) -> int:
        return len(self._positions)
