"""
Identifier resolution between DSL text and internal element identities.

Two directions:
- Parsing: `IdentifierTable` maps the identifiers written in the DSL
  (bare `w` or scope-qualified `a.w`) to the generated element ids.
- Generation: `IdentifierAllocator` picks a unique DSL identifier for
  every element id, reusing readable ids verbatim.

Readable ids (`OrderService_Container`) are produced by `element_identity`
when an element is renamed.
"""

import re
from typing import Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Element, ElementKind


IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

# Words that start a statement the parser classifies before element syntax
RESERVED_WORDS = frozenset({
    "workspace", "model", "views", "styles", "group", "element", "position", "this",
    "include", "exclude", "autoLayout", "title",
    "person", "softwareSystem", "container", "component",
    "deploymentNode", "infrastructureNode",
    "systemLandscape", "systemContext", "deployment",
})

CYRILLIC_TO_LATIN = {
    "а": "a", "б": "b", "в": "v", "г": "g", "д": "d", "е": "e", "ё": "yo",
    "ж": "zh", "з": "z", "и": "i", "й": "j", "к": "k", "л": "l", "м": "m",
    "н": "n", "о": "o", "п": "p", "р": "r", "с": "s", "т": "t", "у": "u",
    "ф": "f", "х": "h", "ц": "ts", "ч": "ch", "ш": "sh", "щ": "shch",
    "ъ": "", "ы": "y", "ь": "", "э": "e", "ю": "yu", "я": "ya",
    # Ukrainian / Belarusian letters
    "є": "ye", "і": "i", "ї": "yi", "ґ": "g", "ў": "u",
}


def transliterate(text: str) -> str:
    """Lower-case text and replace Cyrillic letters with Latin equivalents."""
    return "".join(CYRILLIC_TO_LATIN.get(char, char) for char in text.lower())


def slugify(text: str) -> str:
    """
    Build a TitleCase slug from free text.

    "order service" -> "OrderService", "Сервис заказов" -> "ServisZakazov"
    """
    clean = re.sub(r"[^a-zA-Z0-9]", " ", transliterate(text)).strip()
    if not clean:
        return ""
    return "".join(word[:1].upper() + word[1:].lower() for word in clean.split())


def _unique(base: str, taken: set[str]) -> str:
    candidate = base
    suffix = 0
    while candidate in taken:
        suffix += 1
        candidate = f"{base}_{suffix}"
    return candidate


def element_identity(kind: "ElementKind", name: str, existing_ids: Iterable[str]) -> str:
    """
    Readable identity for an element: `<Slug>_<KindLabel>`.

    A numeric suffix is appended until the identity is not in existing_ids.
    """
    type_label = re.sub(r"\s+", "", kind.label)
    base = f"{slugify(name) or 'Unnamed'}_{type_label}"
    return _unique(base, set(existing_ids))


def view_identity(name: str, existing_ids: Iterable[str]) -> str:
    """Readable identity (also used as key) for a renamed view."""
    return _unique(slugify(name) or "view", set(existing_ids))


def sanitize_key(key: str) -> str:
    """
    Sanitize a string to be a valid view key.

    Whitespace runs become underscores, anything outside [A-Za-z0-9_-] is
    dropped.
    """
    if not key:
        return ""
    return re.sub(r"[^a-zA-Z0-9_-]", "", re.sub(r"\s+", "_", key))


def is_dsl_identifier(value: str) -> bool:
    """True if value can be written as a DSL identifier as-is."""
    if not value or value in RESERVED_WORDS:
        return False
    return IDENTIFIER_PATTERN.match(value) is not None


class IdentifierTable:
    """
    Parse-time table of DSL identifiers to element ids.

    Every element is stored under its bare identifier and under its
    scope-qualified form, so references may use either. A later
    declaration of the same bare identifier wins.
    """

    def __init__(self):
        self._ids: dict[str, str] = {}
        self._qualified: dict[str, str] = {}  # qualified name -> element id

    def register(self, identifier: str, qualified: str, element_id: str) -> None:
        """Register an element under its bare and qualified identifiers."""
        self._ids[qualified] = element_id
        self._ids[identifier] = element_id
        self._qualified[qualified] = element_id

    def resolve(self, reference: str) -> Optional[str]:
        """Element id for a bare or qualified reference, or None."""
        return self._ids.get(reference)

    def qualified_names_ending_with(self, identifier: str) -> list[str]:
        """Qualified names whose last segment(s) equal identifier."""
        suffix = f".{identifier}"
        return [q for q in self._qualified if q.endswith(suffix)]

    def __contains__(self, reference: str) -> bool:
        return reference in self._ids

    def __len__(self) -> int:
        return len(self._qualified)


class IdentifierAllocator:
    """
    Generate-time mapping of element ids to unique DSL identifiers.

    Ids that already satisfy the identifier grammar are reused verbatim;
    other ids get `<SanitizedName>_<first 4 chars of id>`. Reserved words
    are never handed out.
    """

    def __init__(self, elements: Iterable["Element"] = ()):
        self._by_id: dict[str, str] = {}
        self._taken: set[str] = set(RESERVED_WORDS)
        elements = list(elements)
        # Verbatim ids first so a fallback can never steal one of them
        for element in elements:
            if is_dsl_identifier(element.id) and element.id not in self._taken:
                self._assign(element.id, element.id)
        for element in elements:
            if element.id not in self._by_id:
                self._assign(element.id, _unique(self.fallback(element), self._taken))

    @staticmethod
    def fallback(element: "Element") -> str:
        base = re.sub(r"[^a-zA-Z0-9]", "", element.name)
        if not base or not base[0].isalpha():
            base = f"element{base}"
        short = re.sub(r"[^a-zA-Z0-9]", "", element.id)[:4]
        return f"{base}_{short}" if short else base

    def _assign(self, element_id: str, identifier: str) -> None:
        self._by_id[element_id] = identifier
        self._taken.add(identifier)

    def get(self, element_id: Optional[str]) -> Optional[str]:
        if element_id is None:
            return None
        return self._by_id.get(element_id)

    def identifiers(self) -> list[str]:
        return list(self._by_id.values())
