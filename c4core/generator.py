"""
Structurizr-style DSL generator.

Serializes a workspace to DSL text deterministically:
- `model` block: elements depth-first by parent, then relationships
- `views` block: one entry per view with its title and commented position
  metadata
- fixed `styles` block

Deployment views use a simplified `deployment <node|*> "key"` header that
strict Structurizr tooling does not accept.

Position metadata is written as `# element <identifier> <x> <y>` so the
output stays valid for strict Structurizr tooling while the parser here
can still recover the layout.
"""

from typing import Optional

from .config import EXTERNAL_STYLE, EXTERNAL_TAG, INDENT, STYLE_COLORS
from .identifiers import IdentifierAllocator, sanitize_key
from .models import Element, ElementKind, View, ViewKind, Workspace
from .views import deployment_view_key


def escape(value: Optional[str]) -> str:
    """Escape double quotes and newlines for a quoted DSL string."""
    if not value:
        return ""
    return value.replace('"', '\\"').replace("\n", "\\n")


def quote(value: Optional[str]) -> str:
    return f'"{escape(value)}"'


def quoted_tail(values: list[Optional[str]]) -> str:
    """
    Quoted optional arguments, dropping trailing empties.

    Inner empties are kept as `""` so later arguments keep their position.
    """
    values = list(values)
    while values and not values[-1]:
        values.pop()
    return "".join(f" {quote(v)}" for v in values)


def element_tags(element: Element) -> list[str]:
    tags = list(element.tags)
    if element.is_external and EXTERNAL_TAG not in tags:
        tags.append(EXTERNAL_TAG)
    return tags


class DSLGenerator:
    """Generates DSL text from a workspace. Holds no per-call state."""

    def __init__(self, indent: str = INDENT):
        self.indent = indent

    def generate(self, workspace: Workspace) -> str:
        """Generate complete DSL text for a workspace."""
        identifiers = IdentifierAllocator(workspace.elements)

        lines = [f"workspace {quote(workspace.name)} {quote(workspace.description)} {{", ""]

        lines.append(f"{self.indent}model {{")
        lines.extend(self._model(workspace, identifiers))
        lines.append(f"{self.indent}}}")
        lines.append("")

        lines.append(f"{self.indent}views {{")
        lines.extend(self._views(workspace, identifiers))
        lines.append(f"{self.indent}}}")

        lines.append("}")
        return "\n".join(lines)

    # --- Model ---

    def _model(self, workspace: Workspace, identifiers: IdentifierAllocator) -> list[str]:
        children: dict[Optional[str], list[Element]] = {}
        known_ids = {e.id for e in workspace.elements}
        for element in workspace.elements:
            # Elements with a dangling parent are emitted at root level
            parent_id = element.parent_id if element.parent_id in known_ids else None
            children.setdefault(parent_id, []).append(element)

        lines = self._elements(children.get(None, []), children, identifiers, 2, set())
        if workspace.elements:
            lines.append("")

        # Groups are declared without an identifier, so they cannot be referenced
        group_ids = {e.id for e in workspace.elements if e.kind == ElementKind.GROUP}
        prefix = self.indent * 2
        for rel in workspace.relationships:
            if rel.source_id in group_ids or rel.target_id in group_ids:
                continue
            source = identifiers.get(rel.source_id)
            target = identifiers.get(rel.target_id)
            if source is None or target is None:
                continue
            tail = quoted_tail([rel.technology, ",".join(rel.tags)])
            lines.append(f"{prefix}{source} -> {target} {quote(rel.description)}{tail}")

        return lines

    def _elements(
        self,
        elements: list[Element],
        children: dict[Optional[str], list[Element]],
        identifiers: IdentifierAllocator,
        level: int,
        visited: set[str],
    ) -> list[str]:
        lines: list[str] = []
        prefix = self.indent * level

        for element in elements:
            if element.id in visited:
                continue
            visited.add(element.id)
            nested = children.get(element.id, [])

            if element.kind == ElementKind.GROUP:
                lines.append(f"{prefix}group {quote(element.name)} {{")
                lines.extend(self._elements(nested, children, identifiers, level + 1, visited))
                lines.append(f"{prefix}}}")
                continue

            declaration = f"{prefix}{identifiers.get(element.id)} = {self._declaration(element)}"
            if nested:
                lines.append(f"{declaration} {{")
                lines.extend(self._elements(nested, children, identifiers, level + 1, visited))
                lines.append(f"{prefix}}}")
            else:
                lines.append(declaration)

        return lines

    @staticmethod
    def _declaration(element: Element) -> str:
        tags = ",".join(element_tags(element))
        if element.kind.has_technology:
            optional = [element.description, element.technology, tags]
        else:
            optional = [element.description, tags]
        return f"{element.kind.value} {quote(element.name)}{quoted_tail(optional)}"

    # --- Views ---

    def _view_header(self, view: View, workspace: Workspace, identifiers: IdentifierAllocator) -> str:
        key = quote(sanitize_key(view.key))
        description = quote(view.description)

        if view.kind == ViewKind.SYSTEM_LANDSCAPE:
            return f"systemLandscape {key} {description}"
        if view.kind == ViewKind.DEPLOYMENT:
            anchor = self._deployment_anchor(view, workspace, identifiers)
            return f"deployment {anchor} {key} {description}"
        anchor = identifiers.get(view.anchor_id)
        return f"{view.kind.value} {anchor} {key} {description}"

    @staticmethod
    def _deployment_anchor(view: View, workspace: Workspace, identifiers: IdentifierAllocator) -> str:
        for element in workspace.elements:
            if element.kind == ElementKind.DEPLOYMENT_NODE and view.key == deployment_view_key(element.id):
                return identifiers.get(element.id) or "*"
        return "*"

    def _views(self, workspace: Workspace, identifiers: IdentifierAllocator) -> list[str]:
        lines: list[str] = []
        level2 = self.indent * 2
        level3 = self.indent * 3

        if not workspace.views:
            # Fallback for workspaces saved before views existed
            systems = [e for e in workspace.elements if e.kind == ElementKind.SOFTWARE_SYSTEM]
            if systems:
                lines.append(f'{level2}systemContext {identifiers.get(systems[0].id)} "Context" "Context View" {{')
                lines.append(f"{level3}include *")
                lines.append(f"{level3}autoLayout lr")
                lines.append(f"{level2}}}")
                lines.append("")

        for view in workspace.views:
            if view.kind != ViewKind.SYSTEM_LANDSCAPE and view.kind != ViewKind.DEPLOYMENT:
                if identifiers.get(view.anchor_id) is None:
                    # An anchored view without its anchor cannot be written
                    continue

            lines.append(f"{level2}{self._view_header(view, workspace, identifiers)} {{")
            if view.name and view.name != view.key:
                lines.append(f"{level3}title {quote(view.name)}")
            lines.append(f"{level3}include *")

            for element in workspace.elements:
                if element.kind in view.kind.visible_kinds:
                    x = round(element.position.x)
                    y = round(element.position.y)
                    lines.append(f"{level3}# element {identifiers.get(element.id)} {x} {y}")

            lines.append(f"{level3}autoLayout lr")
            lines.append(f"{level2}}}")
            lines.append("")

        lines.append(f"{level2}styles {{")
        lines.extend(self._styles())
        lines.append(f"{level2}}}")
        return lines

    def _styles(self) -> list[str]:
        level3 = self.indent * 3
        level4 = self.indent * 4
        lines: list[str] = []

        for kind in ElementKind:
            tag = kind.style_tag
            if tag is None:
                continue
            background, color = STYLE_COLORS[tag]
            lines.append(f'{level3}element "{tag}" {{')
            if kind == ElementKind.PERSON:
                lines.append(f"{level4}shape Person")
            lines.append(f"{level4}background {background}")
            lines.append(f"{level4}color {color}")
            lines.append(f"{level3}}}")

        background, color = EXTERNAL_STYLE
        lines.append(f'{level3}element "{EXTERNAL_TAG}" {{')
        lines.append(f"{level4}background {background}")
        lines.append(f"{level4}color {color}")
        lines.append(f"{level3}}}")
        return lines


def generate_dsl(workspace: Workspace) -> str:
    """Generate DSL text from a workspace."""
    return DSLGenerator().generate(workspace)
