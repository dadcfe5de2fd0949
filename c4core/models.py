"""
Core data models for C4 workspaces.

These models define the canonical schema shared by the parser, the
generator and the backend:
- Elements arranged in a tree through `parent_id`
- Relationships as directed edges between element ids
- Views as named scopes over the model, optionally anchored on an element
- Workspace as the aggregate root

Field Naming Convention:
- Python attributes and JSON keys are snake_case (`parent_id`, `source_id`)
- For compatibility with browser exports, camelCase keys (`parentId`,
  `sourceId`, `softwareSystemId`, ...) are accepted on input and converted
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field, model_validator
import uuid

from .config import (
    DEFAULT_SIZES,
    DEFAULT_WORKSPACE_DESCRIPTION,
    DEFAULT_WORKSPACE_NAME,
    LANDSCAPE_VIEW_ID,
    LANDSCAPE_VIEW_NAME,
)


class ElementKind(str, Enum):
    """Kinds of elements in the C4 hierarchy (DSL keyword as value)."""
    PERSON = "person"
    SOFTWARE_SYSTEM = "softwareSystem"
    CONTAINER = "container"
    COMPONENT = "component"
    DEPLOYMENT_NODE = "deploymentNode"
    INFRASTRUCTURE_NODE = "infrastructureNode"
    GROUP = "group"  # Visual enclosure only, declared with `group "name"`

    @property
    def label(self) -> str:
        """Human label, e.g. "Software System"."""
        return ELEMENT_LABELS[self]

    @property
    def has_technology(self) -> bool:
        """Whether the DSL declaration has a technology slot."""
        return self in TECHNOLOGY_KINDS

    @property
    def style_tag(self) -> Optional[str]:
        """Built-in style tag used by the generated styles block."""
        return ELEMENT_STYLE_TAGS[self]

    @property
    def default_size(self) -> tuple[int, int]:
        return DEFAULT_SIZES[self.value]


ELEMENT_LABELS: dict[ElementKind, str] = {
    ElementKind.PERSON: "Person",
    ElementKind.SOFTWARE_SYSTEM: "Software System",
    ElementKind.CONTAINER: "Container",
    ElementKind.COMPONENT: "Component",
    ElementKind.DEPLOYMENT_NODE: "Deployment Node",
    ElementKind.INFRASTRUCTURE_NODE: "Infrastructure Node",
    ElementKind.GROUP: "Group",
}

ELEMENT_STYLE_TAGS: dict[ElementKind, Optional[str]] = {
    ElementKind.PERSON: "Person",
    ElementKind.SOFTWARE_SYSTEM: "Software System",
    ElementKind.CONTAINER: "Container",
    ElementKind.COMPONENT: "Component",
    ElementKind.DEPLOYMENT_NODE: None,
    ElementKind.INFRASTRUCTURE_NODE: None,
    ElementKind.GROUP: None,
}

TECHNOLOGY_KINDS = frozenset({
    ElementKind.CONTAINER,
    ElementKind.COMPONENT,
    ElementKind.DEPLOYMENT_NODE,
    ElementKind.INFRASTRUCTURE_NODE,
})

# Kinds that may appear as `identifier = <kind> ...` in the model block
DECLARABLE_KINDS = tuple(k for k in ElementKind if k is not ElementKind.GROUP)


class RelationshipKind(str, Enum):
    """Semantic kinds of relationships."""
    USES = "uses"
    INTERACTS_WITH = "interactsWith"
    DELIVERS = "delivers"
    INFLUENCES = "influences"


class ViewKind(str, Enum):
    """Kinds of views (DSL keyword as value)."""
    SYSTEM_LANDSCAPE = "systemLandscape"
    SYSTEM_CONTEXT = "systemContext"
    CONTAINER = "container"
    COMPONENT = "component"
    DEPLOYMENT = "deployment"

    @property
    def visible_kinds(self) -> tuple[ElementKind, ...]:
        """Element kinds whose positions are recorded for this view."""
        return VIEW_VISIBLE_KINDS[self]

    @property
    def anchor_kind(self) -> Optional[ElementKind]:
        """Kind the view's anchor element must have, if any."""
        return VIEW_ANCHOR_KINDS[self]


VIEW_VISIBLE_KINDS: dict[ViewKind, tuple[ElementKind, ...]] = {
    ViewKind.SYSTEM_LANDSCAPE: (ElementKind.PERSON, ElementKind.SOFTWARE_SYSTEM),
    ViewKind.SYSTEM_CONTEXT: (ElementKind.PERSON, ElementKind.SOFTWARE_SYSTEM),
    ViewKind.CONTAINER: (
        ElementKind.PERSON, ElementKind.SOFTWARE_SYSTEM, ElementKind.CONTAINER,
    ),
    ViewKind.COMPONENT: (
        ElementKind.PERSON, ElementKind.SOFTWARE_SYSTEM, ElementKind.CONTAINER,
        ElementKind.COMPONENT,
    ),
    ViewKind.DEPLOYMENT: (
        ElementKind.SOFTWARE_SYSTEM, ElementKind.CONTAINER,
        ElementKind.DEPLOYMENT_NODE, ElementKind.INFRASTRUCTURE_NODE,
    ),
}

VIEW_ANCHOR_KINDS: dict[ViewKind, Optional[ElementKind]] = {
    ViewKind.SYSTEM_LANDSCAPE: None,
    ViewKind.SYSTEM_CONTEXT: ElementKind.SOFTWARE_SYSTEM,
    ViewKind.CONTAINER: ElementKind.SOFTWARE_SYSTEM,
    ViewKind.COMPONENT: ElementKind.CONTAINER,
    ViewKind.DEPLOYMENT: None,  # Matched by derived key, see c4core.views
}


def generate_id() -> str:
    """Generate a unique opaque identity."""
    return str(uuid.uuid4())


def _rename_legacy_keys(data: Any, mapping: dict[str, str]) -> Any:
    """Convert camelCase keys from browser exports to snake_case."""
    if isinstance(data, dict):
        for legacy, current in mapping.items():
            if legacy in data and current not in data:
                data[current] = data.pop(legacy)
    return data


class Position(BaseModel):
    """Top-left screen coordinates of an element."""
    x: float = 0
    y: float = 0


class Size(BaseModel):
    """Fixed size, used by group elements."""
    width: float
    height: float


class Element(BaseModel):
    """A node in the C4 hierarchy."""
    id: str = Field(default_factory=generate_id)
    kind: ElementKind
    name: str
    description: str = ""
    technology: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    parent_id: Optional[str] = None  # None = root level
    is_external: bool = False
    position: Position = Field(default_factory=Position)
    size: Optional[Size] = None

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Accept `type`, `parentId` and `isExternal` from browser exports."""
        return _rename_legacy_keys(data, {
            "type": "kind",
            "parentId": "parent_id",
            "isExternal": "is_external",
        })


class Relationship(BaseModel):
    """A directed, described edge between two elements."""
    id: str = Field(default_factory=generate_id)
    source_id: str
    target_id: str
    description: str = ""
    technology: Optional[str] = None
    kind: RelationshipKind = RelationshipKind.USES
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Accept `sourceId`/`targetId`/`type` from browser exports."""
        return _rename_legacy_keys(data, {
            "sourceId": "source_id",
            "targetId": "target_id",
            "type": "kind",
        })


class View(BaseModel):
    """A named visualization scope over the model."""
    id: str = Field(default_factory=generate_id)
    key: str
    kind: ViewKind
    software_system_id: Optional[str] = None  # Anchor for context/container views
    container_id: Optional[str] = None        # Anchor for component views
    name: str = ""
    description: str = ""

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Accept `type`, `softwareSystemId`, `containerId` from browser exports."""
        return _rename_legacy_keys(data, {
            "type": "kind",
            "softwareSystemId": "software_system_id",
            "containerId": "container_id",
        })

    @property
    def anchor_id(self) -> Optional[str]:
        """Id of the element this view is focused on, if any."""
        if self.kind == ViewKind.COMPONENT:
            return self.container_id
        return self.software_system_id


def landscape_view(description: str = "The system landscape view for the workspace.") -> View:
    """The well-known root landscape view."""
    return View(
        id=LANDSCAPE_VIEW_ID,
        key=LANDSCAPE_VIEW_ID,
        kind=ViewKind.SYSTEM_LANDSCAPE,
        name=LANDSCAPE_VIEW_NAME,
        description=description,
    )


class Workspace(BaseModel):
    """
    The aggregate root: name, description, elements, relationships, views.
    This is what gets saved to/loaded from JSON files.
    """
    name: str = DEFAULT_WORKSPACE_NAME
    description: str = DEFAULT_WORKSPACE_DESCRIPTION
    elements: list[Element] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    views: list[View] = Field(default_factory=list)

    def to_json_dict(self) -> dict:
        """Convert to a JSON-serializable dict."""
        return self.model_dump(mode="json")

    @classmethod
    def from_json_dict(cls, data: dict) -> "Workspace":
        """Create a Workspace from a JSON dict (handles camelCase exports)."""
        return cls(
            name=data.get("name", DEFAULT_WORKSPACE_NAME),
            description=data.get("description", ""),
            elements=[Element.model_validate(e) for e in data.get("elements", [])],
            relationships=[Relationship.model_validate(r) for r in data.get("relationships", [])],
            views=[View.model_validate(v) for v in data.get("views", [])],
        )

    def get_element(self, element_id: str) -> Optional[Element]:
        """Get an element by id (O(n))."""
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    def get_relationship(self, relationship_id: str) -> Optional[Relationship]:
        for relationship in self.relationships:
            if relationship.id == relationship_id:
                return relationship
        return None

    def get_view(self, view_id: str) -> Optional[View]:
        for view in self.views:
            if view.id == view_id:
                return view
        return None

    def children_of(self, parent_id: Optional[str]) -> list[Element]:
        """Direct children of an element (or root elements for None), in order."""
        return [e for e in self.elements if e.parent_id == parent_id]

    def descendant_ids(self, element_id: str) -> set[str]:
        """Ids of every element nested (at any depth) under element_id."""
        found: set[str] = set()
        frontier = [element_id]
        while frontier:
            current = frontier.pop()
            for child in self.elements:
                if child.parent_id == current and child.id not in found:
                    found.add(child.id)
                    frontier.append(child.id)
        return found
