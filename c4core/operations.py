"""
Workspace operations as pure functions.

Every function takes a Workspace and returns a new one; the argument is
never mutated. State (current workspace, history, selection) belongs to
the caller, see c4backend.workspace_manager.

Renames re-key the element: a readable identity is derived from the new
name and every reference (children, relationships, view anchors) is
rewritten in a single pass that builds the new workspace.
"""

from typing import Any, Optional

from .config import DEFAULT_WORKSPACE_DESCRIPTION, DEFAULT_WORKSPACE_NAME, LANDSCAPE_VIEW_ID
from .errors import DanglingReferenceError, NotFoundError, ValidationError
from .identifiers import element_identity, sanitize_key, view_identity
from .models import (
    Element,
    ElementKind,
    Position,
    Relationship,
    Size,
    View,
    ViewKind,
    Workspace,
    landscape_view,
)
from .views import component_view_for, container_view_for, deployment_view_key


def _require_element(workspace: Workspace, element_id: str) -> Element:
    element = workspace.get_element(element_id)
    if element is None:
        raise NotFoundError(f"Element not found: {element_id}")
    return element


def _require_relationship(workspace: Workspace, relationship_id: str) -> Relationship:
    relationship = workspace.get_relationship(relationship_id)
    if relationship is None:
        raise NotFoundError(f"Relationship not found: {relationship_id}")
    return relationship


def _require_view(workspace: Workspace, view_id: str) -> View:
    view = workspace.get_view(view_id)
    if view is None:
        raise NotFoundError(f"View not found: {view_id}")
    return view


def _updated(model, updates: dict[str, Any]):
    """Copy of a model with updates applied and validated."""
    return type(model).model_validate({**model.model_dump(), **updates})


# --- Workspace ---

def new_workspace(
    name: str = DEFAULT_WORKSPACE_NAME,
    description: str = DEFAULT_WORKSPACE_DESCRIPTION,
) -> Workspace:
    """An empty workspace holding only the root landscape view."""
    return Workspace(name=name, description=description, views=[landscape_view()])


def load_workspace(workspace: Workspace) -> Workspace:
    """Prepare a workspace for editing: it must have at least one view."""
    if workspace.views:
        return workspace
    return workspace.model_copy(update={"views": [landscape_view()]})


def set_workspace_info(
    workspace: Workspace,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Workspace:
    updates = {}
    if name is not None:
        updates["name"] = name
    if description is not None:
        updates["description"] = description
    return workspace.model_copy(update=updates)


# --- Elements ---

def add_element(
    workspace: Workspace,
    kind: ElementKind,
    position: Optional[Position] = None,
    parent_id: Optional[str] = None,
    name: Optional[str] = None,
    **fields: Any,
) -> tuple[Workspace, Element]:
    """
    Add an element.

    Software systems get a container view and containers a component view
    automatically. Groups get their default size.

    Returns:
        (new workspace, the added element)
    """
    kind = ElementKind(kind)
    if parent_id is not None:
        _require_element(workspace, parent_id)

    if kind == ElementKind.GROUP and "size" not in fields:
        width, height = kind.default_size
        fields["size"] = Size(width=width, height=height)

    element = Element(
        kind=kind,
        name=name or f"New {kind.label}",
        position=position or Position(),
        parent_id=parent_id,
        **fields,
    )

    views = list(workspace.views)
    if kind == ElementKind.SOFTWARE_SYSTEM:
        views.append(container_view_for(element))
    elif kind == ElementKind.CONTAINER:
        views.append(component_view_for(element))

    updated = workspace.model_copy(update={
        "elements": [*workspace.elements, element],
        "views": views,
    })
    return updated, element


def update_element(workspace: Workspace, element_id: str, **updates: Any) -> Workspace:
    """
    Update fields of an element. Use rename_element to change the name
    together with the identity.

    Raises:
        NotFoundError: unknown element
        ValidationError: the update would change the id or create a cycle
    """
    element = _require_element(workspace, element_id)
    if "id" in updates and updates["id"] != element_id:
        raise ValidationError("Element ids change only through rename_element")

    parent_id = updates.get("parent_id")
    if parent_id is not None:
        _require_element(workspace, parent_id)
        if parent_id == element_id or parent_id in workspace.descendant_ids(element_id):
            raise ValidationError("An element cannot be nested inside itself")

    replacement = _updated(element, updates)
    return workspace.model_copy(update={
        "elements": [replacement if e.id == element_id else e for e in workspace.elements],
    })


def move_element(workspace: Workspace, element_id: str, x: float, y: float) -> Workspace:
    return update_element(workspace, element_id, position=Position(x=x, y=y))


def rename_element(workspace: Workspace, element_id: str, new_name: str) -> Workspace:
    """
    Rename an element and re-key it to a readable identity.

    The new identity (`<Slug>_<Kind>`, suffixed until unique) replaces the
    old one on the element, its children's parent links, relationship
    endpoints, view anchors and the derived key of its deployment view. The result is built in one pass so no
    state with mixed identities ever exists.
    """
    element = _require_element(workspace, element_id)
    other_ids = [e.id for e in workspace.elements if e.id != element_id]
    new_id = element_identity(element.kind, new_name, other_ids)

    def rekey(value: Optional[str]) -> Optional[str]:
        return new_id if value == element_id else value

    elements = []
    for e in workspace.elements:
        if e.id == element_id:
            elements.append(e.model_copy(update={"id": new_id, "name": new_name}))
        elif e.parent_id == element_id:
            elements.append(e.model_copy(update={"parent_id": new_id}))
        else:
            elements.append(e)

    relationships = [
        r.model_copy(update={"source_id": rekey(r.source_id), "target_id": rekey(r.target_id)})
        if element_id in (r.source_id, r.target_id) else r
        for r in workspace.relationships
    ]

    old_deployment_key = deployment_view_key(element_id)
    views = []
    for v in workspace.views:
        if element_id in (v.software_system_id, v.container_id):
            v = v.model_copy(update={
                "software_system_id": rekey(v.software_system_id),
                "container_id": rekey(v.container_id),
            })
        elif v.kind == ViewKind.DEPLOYMENT and v.key == old_deployment_key:
            v = v.model_copy(update={"key": deployment_view_key(new_id)})
        views.append(v)

    return workspace.model_copy(update={
        "elements": elements,
        "relationships": relationships,
        "views": views,
    })


def delete_element(workspace: Workspace, element_id: str) -> Workspace:
    """
    Delete an element together with its descendants, every relationship
    touching them and every view anchored on them.
    """
    _require_element(workspace, element_id)
    removed = workspace.descendant_ids(element_id) | {element_id}
    removed_keys = {deployment_view_key(i) for i in removed}

    return workspace.model_copy(update={
        "elements": [e for e in workspace.elements if e.id not in removed],
        "relationships": [
            r for r in workspace.relationships
            if r.source_id not in removed and r.target_id not in removed
        ],
        "views": [
            v for v in workspace.views
            if v.software_system_id not in removed and v.container_id not in removed
            and not (v.kind == ViewKind.DEPLOYMENT and v.key in removed_keys)
        ],
    })


# --- Relationships ---

def _require_endpoint(workspace: Workspace, element_id: str) -> Element:
    element = workspace.get_element(element_id)
    if element is None:
        raise DanglingReferenceError(f"Element not found: {element_id}")
    if element.kind == ElementKind.GROUP:
        raise ValidationError(f"Groups cannot take part in relationships: {element.name}")
    return element


def add_relationship(
    workspace: Workspace,
    source_id: str,
    target_id: str,
    description: str = "Uses",
    **fields: Any,
) -> tuple[Workspace, Relationship]:
    """
    Add a relationship between two existing elements.

    Raises:
        DanglingReferenceError: either endpoint is missing
        ValidationError: either endpoint is a group
    """
    for endpoint in (source_id, target_id):
        _require_endpoint(workspace, endpoint)

    relationship = Relationship(
        source_id=source_id,
        target_id=target_id,
        description=description,
        **fields,
    )
    updated = workspace.model_copy(update={
        "relationships": [*workspace.relationships, relationship],
    })
    return updated, relationship


def update_relationship(workspace: Workspace, relationship_id: str, **updates: Any) -> Workspace:
    relationship = _require_relationship(workspace, relationship_id)
    for key in ("source_id", "target_id"):
        if key in updates:
            _require_endpoint(workspace, updates[key])

    replacement = _updated(relationship, updates)
    return workspace.model_copy(update={
        "relationships": [
            replacement if r.id == relationship_id else r for r in workspace.relationships
        ],
    })


def delete_relationship(workspace: Workspace, relationship_id: str) -> Workspace:
    _require_relationship(workspace, relationship_id)
    return workspace.model_copy(update={
        "relationships": [r for r in workspace.relationships if r.id != relationship_id],
    })


# --- Views ---

def add_view(
    workspace: Workspace,
    kind: ViewKind,
    key: str,
    name: str = "",
    description: str = "",
    software_system_id: Optional[str] = None,
    container_id: Optional[str] = None,
) -> tuple[Workspace, View]:
    """
    Add a view. The key is sanitized; anchors must exist.

    Returns:
        (new workspace, the added view)
    """
    for anchor in (software_system_id, container_id):
        if anchor is not None and workspace.get_element(anchor) is None:
            raise DanglingReferenceError(f"Element not found: {anchor}")

    view = View(
        key=sanitize_key(key) or "view",
        kind=ViewKind(kind),
        name=name or key,
        description=description,
        software_system_id=software_system_id,
        container_id=container_id,
    )
    return workspace.model_copy(update={"views": [*workspace.views, view]}), view


def update_view(workspace: Workspace, view_id: str, **updates: Any) -> Workspace:
    view = _require_view(workspace, view_id)
    if "key" in updates:
        updates["key"] = sanitize_key(updates["key"])
    replacement = _updated(view, updates)
    return workspace.model_copy(update={
        "views": [replacement if v.id == view_id else v for v in workspace.views],
    })


def rename_view(workspace: Workspace, view_id: str, new_name: str) -> Workspace:
    """
    Rename a view, re-keying it from the new name.

    The root landscape view keeps its well-known id and key.
    """
    _require_view(workspace, view_id)

    if view_id == LANDSCAPE_VIEW_ID:
        updates = {"name": new_name}
    else:
        other_ids = [v.id for v in workspace.views if v.id != view_id]
        new_id = view_identity(new_name, other_ids)
        updates = {"id": new_id, "key": new_id, "name": new_name}

    return workspace.model_copy(update={
        "views": [v.model_copy(update=updates) if v.id == view_id else v for v in workspace.views],
    })


def delete_view(workspace: Workspace, view_id: str) -> Workspace:
    """
    Delete a view.

    Raises:
        ValidationError: it is the last remaining view
    """
    _require_view(workspace, view_id)
    if len(workspace.views) == 1:
        raise ValidationError("Cannot delete the last view of a workspace")
    return workspace.model_copy(update={
        "views": [v for v in workspace.views if v.id != view_id],
    })
